from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..collect.model import Document, Operation
from ..logging import get_logger
from ..util.errors import AuthResolutionError, OperationError

LOG = get_logger(__name__)

DEFAULT_PROFILE = "default"
DEFAULT_OPERATION_TIMEOUT = 300.0
FALLBACK_REGION = "ap-southeast-1"

_CREDENTIAL_HINTS = (
    (("InvalidToken", "malformed"), "AWS credentials are invalid or expired for profile '{profile}'. Refresh your credentials."),
    (("could not be found", "NoCredentialsError", "Unable to locate credentials"), "No credentials found for profile '{profile}'. Configure your AWS credentials."),
    (("ExpiredToken",), "AWS credentials have expired for profile '{profile}'. Refresh your credentials."),
)


def _stderr_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return str(value)


@dataclass(frozen=True)
class AwsCli:
    """
    Runs AWS CLI commands as subprocesses and decodes their JSON output.
    Holds only read-only settings, so one instance is shared by every worker thread.
    """

    profile: str = DEFAULT_PROFILE
    timeout: Optional[float] = DEFAULT_OPERATION_TIMEOUT
    executable: str = "aws"

    def _env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["AWS_PAGER"] = ""
        return env

    def base_command(self) -> List[str]:
        return [self.executable, "--profile", self.profile, "--output", "json", "--no-cli-pager"]

    def _run(self, argv: Sequence[str], label: str) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                list(argv),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                env=self._env(),
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise OperationError(label, f"timed out after {self.timeout}s") from e
        except OSError as e:
            raise OperationError(label, f"failed to execute AWS CLI: {e}") from e

    def perform(self, operation: Operation) -> Document:
        """
        Execute one operation and return its decoded JSON document.
        Any failure (spawn, timeout, non-zero exit, empty or non-JSON output) raises OperationError.
        """
        label = operation.label
        proc = self._run(self.base_command() + operation.argv(), label)
        if proc.returncode != 0:
            stderr = _stderr_text(proc.stderr).strip()
            raise OperationError(
                label,
                f"AWS CLI command failed: {stderr or 'exit status ' + str(proc.returncode)}",
                returncode=proc.returncode,
                stderr=stderr,
            )
        stdout = proc.stdout or ""
        if not stdout.strip():
            raise OperationError(label, "AWS CLI returned no output", returncode=proc.returncode)
        try:
            return json.loads(stdout)
        except ValueError as e:
            raise OperationError(label, f"failed to parse AWS CLI JSON output: {e}", returncode=proc.returncode) from e

    def check_available(self) -> str:
        """
        Return the `aws --version` banner, or raise AuthResolutionError if the CLI is unusable.
        """
        try:
            proc = self._run([self.executable, "--version"], "aws --version")
        except OperationError as e:
            raise AuthResolutionError("AWS CLI not found. Please install AWS CLI first.") from e
        if proc.returncode != 0:
            raise AuthResolutionError("AWS CLI is not working properly")
        return (proc.stdout or _stderr_text(proc.stderr)).strip()

    def validate_credentials(self) -> Dict[str, Any]:
        """
        Call `sts get-caller-identity` and return the identity document.
        Common credential failures are translated into actionable messages.
        """
        try:
            return self.perform(Operation(("sts", "get-caller-identity")))
        except OperationError as e:
            stderr = e.stderr or str(e)
            for markers, template in _CREDENTIAL_HINTS:
                if any(marker in stderr for marker in markers):
                    raise AuthResolutionError(f"{template.format(profile=self.profile)}\nError: {stderr}") from e
            raise AuthResolutionError(
                f"Failed to validate AWS credentials for profile '{self.profile}'.\nError: {stderr}"
            ) from e

    def get_default_region(self) -> str:
        """
        Region configured for the profile, falling back to ap-southeast-1 when none is set.
        """
        argv = [self.executable, "configure", "get", "region", "--profile", self.profile]
        proc = self._run(argv, "aws configure get region")
        region = (proc.stdout or "").strip() if proc.returncode == 0 else ""
        if not region:
            LOG.info(
                "No default region configured for profile; using fallback",
                extra={"profile": self.profile, "region": FALLBACK_REGION},
            )
            return FALLBACK_REGION
        return region
