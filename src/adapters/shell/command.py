"""
Command adapter — run an external program and capture its output.

The SINGLE PLACE where ``subprocess.run`` is called for provisioning
steps. Commands are argv lists, never shell strings; stdout and
stderr are captured together so a failure can be reported with
everything the tool printed.
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
import time
from pathlib import Path

from src.adapters.base import Adapter, ExecutionContext
from src.core.models.action import Receipt

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 3600
_OUTPUT_TAIL = 8000


class CommandAdapter(Adapter):
    """Execute an argv command and capture combined output.

    Action params:
        argv (list[str]): The program and its arguments.
        cwd (str): Working directory (default: context.work_dir).
        env (dict[str, str]): Extra environment variables.
        timeout (int): Timeout in seconds (default: 3600).
    """

    @property
    def name(self) -> str:
        return "command"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.action.params.get("argv")
        if not argv or not isinstance(argv, list):
            return False, "Missing required param: 'argv' (non-empty list)"
        if not all(isinstance(a, str) for a in argv):
            return False, "Every 'argv' element must be a string"

        # Directories created by earlier steps don't exist during a dry run
        if not context.dry_run and not Path(context.working_dir).is_dir():
            return False, f"Working directory does not exist: {context.working_dir}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        action = context.action
        argv: list[str] = action.params["argv"]
        timeout = action.params.get("timeout", DEFAULT_TIMEOUT)
        cwd = context.working_dir
        command = shlex.join(argv)

        env = os.environ.copy()
        for key, value in (action.params.get("env") or {}).items():
            env[key] = str(value)

        logger.debug("Executing: %s (cwd=%s)", command, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": command, "cwd": cwd, "timeout": timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command not found: {argv[0]}",
                return_code=127,
                metadata={"command": command, "cwd": cwd},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command, "cwd": cwd},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "").strip()[-_OUTPUT_TAIL:]
        metadata = {"command": command, "cwd": cwd}

        if result.returncode in action.success_codes:
            return Receipt.success(
                adapter=self.name,
                action_id=action.id,
                output=output,
                return_code=result.returncode,
                duration_ms=elapsed_ms,
                metadata=metadata,
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=action.id,
            error=f"Command exited with code {result.returncode}",
            output=output,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
