"""Kubernetes backend driven through the ``kubectl`` CLI.

Translates ``ConfigResourceSpec`` / ``ExecutionUnitSpec`` into ConfigMap
and batch/v1 Job manifests and applies them with ``kubectl`` via
subprocess. Label-selector listing and ``--ignore-not-found`` deletion
give the sweeper the idempotent list-then-delete primitives it needs.

Spec → manifest mapping:

    .. code-block:: text

        ExecutionUnitSpec field     │ Job manifest
        ────────────────────────────┼──────────────────────────────────────
        name                        │ metadata.name
        labels                      │ metadata.labels + template labels
        parallelism                 │ spec.parallelism
        active_deadline_seconds     │ spec.activeDeadlineSeconds
        backoff_limit               │ spec.backoffLimit
        config_name, mount_path     │ configMap volume + volumeMount
        image, command              │ containers[0]
        run_as_user                 │ containers[0].securityContext

Architecture Decisions:
    - subprocess-only: Uses the ``kubectl`` binary rather than a client
      library, so the loader has no cluster SDK dependency and honours
      whatever auth plugins the operator's kubeconfig already uses.
    - JSON manifests on stdin: ``kubectl create -f -`` with a JSON body
      (valid YAML) avoids temp files.
    - Completion by polling ``get job -o json`` with capped exponential
      backoff, reading the Complete/Failed conditions.

Tags:
    kubernetes, kubectl, backend, jobs, configmaps
"""

from __future__ import annotations

import json
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any

from loadspine.core.errors import BackendError, BackendUnavailableError
from loadspine.core.logging import get_logger
from loadspine.runtimes._base import BaseClusterBackend
from loadspine.runtimes._types import (
    BackendHealth,
    ConfigResourceSpec,
    ExecutionUnitSpec,
    UnitStatus,
    format_selector,
)

logger = get_logger(__name__)


def default_kubeconfig() -> str:
    """Return ``~/.kube/config`` when a home directory is known, else ``""``."""
    try:
        home = Path.home()
    except RuntimeError:
        return ""
    return str(home / ".kube" / "config")


# ---------------------------------------------------------------------------
# Manifest rendering
# ---------------------------------------------------------------------------


def configmap_manifest(spec: ConfigResourceSpec) -> dict[str, Any]:
    """Render a ConfigMap manifest."""
    metadata: dict[str, Any] = {"name": spec.name, "labels": dict(spec.labels)}
    if spec.namespace:
        metadata["namespace"] = spec.namespace
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": metadata,
        "data": dict(spec.data),
    }


def job_manifest(spec: ExecutionUnitSpec) -> dict[str, Any]:
    """Render a batch/v1 Job manifest."""
    metadata: dict[str, Any] = {"name": spec.name, "labels": dict(spec.labels)}
    if spec.namespace:
        metadata["namespace"] = spec.namespace

    container: dict[str, Any] = {
        "name": spec.container_name,
        "image": spec.image,
        "imagePullPolicy": spec.image_pull_policy,
        "command": list(spec.command),
        "volumeMounts": [
            {
                "name": spec.config_name,
                "mountPath": spec.mount_path,
                "readOnly": False,
            }
        ],
        "securityContext": {
            "readOnlyRootFilesystem": spec.read_only_root_filesystem,
        },
    }
    if spec.run_as_user is not None:
        container["securityContext"]["runAsUser"] = spec.run_as_user

    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": metadata,
        "spec": {
            "parallelism": spec.parallelism,
            "activeDeadlineSeconds": spec.active_deadline_seconds,
            "backoffLimit": spec.backoff_limit,
            "template": {
                "metadata": {"labels": dict(spec.labels)},
                "spec": {
                    "restartPolicy": spec.restart_policy,
                    "volumes": [
                        {
                            "name": spec.config_name,
                            "configMap": {"name": spec.config_name},
                        }
                    ],
                    "containers": [container],
                },
            },
        },
    }


def job_status_from_manifest(job: dict[str, Any]) -> UnitStatus:
    """Derive a ``UnitStatus`` from a Job object returned by the API."""
    status = job.get("status") or {}
    succeeded = int(status.get("succeeded") or 0)
    failed = int(status.get("failed") or 0)
    for condition in status.get("conditions") or []:
        if condition.get("status") != "True":
            continue
        if condition.get("type") == "Complete":
            return UnitStatus(state="succeeded", succeeded=succeeded, failed=failed)
        if condition.get("type") == "Failed":
            message = condition.get("reason") or condition.get("message")
            return UnitStatus(state="failed", succeeded=succeeded, failed=failed, message=message)
    if status.get("active"):
        return UnitStatus(state="running", succeeded=succeeded, failed=failed)
    return UnitStatus(state="pending", succeeded=succeeded, failed=failed)


# ---------------------------------------------------------------------------
# Backend
# ---------------------------------------------------------------------------


class KubectlBackend(BaseClusterBackend):
    """Cluster backend that shells out to ``kubectl``.

    Parameters
    ----------
    namespace
        Namespace every resource is created in and listed from.
    kubeconfig
        Path to a kubeconfig file. Empty means ``~/.kube/config``.
    context
        Optional kubeconfig context name.
    command_timeout
        Per-invocation timeout in seconds.
    poll_max_delay
        Upper bound for the completion-poll backoff, in seconds.

    Example::

        backend = KubectlBackend(namespace="vulnerability-assessment-tool-core")
        backend.list_units({"app.kubernetes.io/name": "bugs-loader"})
    """

    def __init__(
        self,
        namespace: str,
        kubeconfig: str = "",
        context: str | None = None,
        command_timeout: int = 60,
        poll_max_delay: float = 5.0,
    ) -> None:
        self.namespace = namespace
        self.kubeconfig = kubeconfig or default_kubeconfig()
        self.context = context
        self.command_timeout = command_timeout
        self.poll_max_delay = poll_max_delay
        self._kubectl_cmd = self._find_kubectl()

    @property
    def backend_name(self) -> str:
        return "kubectl"

    # ------------------------------------------------------------------
    # kubectl discovery
    # ------------------------------------------------------------------

    @staticmethod
    def _find_kubectl() -> str:
        kubectl = shutil.which("kubectl")
        if kubectl is None:
            raise BackendUnavailableError(
                "kubectl not found on PATH. Install it from "
                "https://kubernetes.io/docs/tasks/tools/ or add it to PATH."
            )
        return kubectl

    # ------------------------------------------------------------------
    # Configuration resources
    # ------------------------------------------------------------------

    def _do_create_config(self, spec: ConfigResourceSpec) -> None:
        self._run_kubectl(["create", "-f", "-"], manifest=configmap_manifest(spec))

    def _do_delete_config(self, name: str) -> bool:
        return self._delete_resource("configmap", name)

    def _do_list_configs(self, selector: dict[str, str]) -> list[str]:
        return self._list_names("configmaps", selector)

    # ------------------------------------------------------------------
    # Execution units
    # ------------------------------------------------------------------

    def _do_create_unit(self, spec: ExecutionUnitSpec) -> None:
        self._run_kubectl(["create", "-f", "-"], manifest=job_manifest(spec))

    def _do_delete_unit(self, name: str) -> bool:
        # Background propagation removes the job's pods too.
        return self._delete_resource("job", name, "--cascade=background")

    def _do_list_units(self, selector: dict[str, str]) -> list[str]:
        return self._list_names("jobs", selector)

    def _do_wait_for_unit(self, name: str, timeout_seconds: float) -> UnitStatus:
        """Poll the job until Complete/Failed or the timeout elapses.

        Uses exponential backoff: 1s, 2s, 4s, then ``poll_max_delay``.
        """
        deadline = time.monotonic() + timeout_seconds
        delay = 1.0
        last = UnitStatus(state="unknown")

        while True:
            result = self._run_kubectl(["get", "job", name, "-o", "json"], check=False)
            if result.returncode != 0:
                if "NotFound" in result.stderr:
                    return UnitStatus(state="unknown", message=f"job {name!r} not found")
                raise BackendError(
                    f"kubectl get job {name} failed (exit {result.returncode}): "
                    f"{result.stderr.strip()}"
                )
            last = job_status_from_manifest(json.loads(result.stdout))
            if last.is_terminal:
                return last

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return UnitStatus(
                    state="timeout",
                    succeeded=last.succeeded,
                    failed=last.failed,
                    message=f"job {name!r} still {last.state} after {timeout_seconds}s",
                )
            time.sleep(min(delay, remaining))
            delay = min(delay * 2, self.poll_max_delay)

    def _do_health(self) -> BackendHealth:
        result = self._run_kubectl(["version", "-o", "json"], check=False)
        if result.returncode != 0:
            return BackendHealth(
                healthy=False,
                backend=self.backend_name,
                message=result.stderr.strip() or f"exit {result.returncode}",
            )
        info = json.loads(result.stdout or "{}")
        server = info.get("serverVersion") or {}
        return BackendHealth(
            healthy=True,
            backend=self.backend_name,
            version=server.get("gitVersion"),
            details={"namespace": self.namespace},
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _delete_resource(self, kind: str, name: str, *extra: str) -> bool:
        result = self._run_kubectl(
            ["delete", kind, name, "--ignore-not-found", "-o", "name", *extra],
        )
        # kubectl prints nothing when the resource was already gone.
        return bool(result.stdout.strip())

    def _list_names(self, kind: str, selector: dict[str, str]) -> list[str]:
        result = self._run_kubectl(
            ["get", kind, "-l", format_selector(selector), "-o", "json"],
        )
        payload = json.loads(result.stdout or "{}")
        return [item["metadata"]["name"] for item in payload.get("items", [])]

    def _base_args(self) -> list[str]:
        args = [self._kubectl_cmd]
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            args.extend(["--context", self.context])
        args.extend(["--namespace", self.namespace])
        return args

    def _run_kubectl(
        self,
        args: list[str],
        manifest: dict[str, Any] | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run a kubectl command, optionally feeding a manifest on stdin."""
        cmd = [*self._base_args(), *args]
        logger.debug("kubectl.exec", cmd=" ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                input=json.dumps(manifest) if manifest is not None else None,
                capture_output=True,
                text=True,
                timeout=self.command_timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise BackendUnavailableError(
                f"kubectl timed out after {self.command_timeout}s: {' '.join(args)}",
                cause=exc,
            ) from exc
        except OSError as exc:
            raise BackendUnavailableError(
                f"kubectl could not be executed: {exc}", cause=exc,
            ) from exc

        if check and result.returncode != 0:
            raise BackendError(
                f"kubectl command failed (exit {result.returncode}): "
                f"{' '.join(args)}\n{result.stderr.strip()}"
            )
        return result
