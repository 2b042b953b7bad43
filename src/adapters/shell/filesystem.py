"""
Filesystem adapter — file and directory operations.

Provides a receipt-returning interface for the file placement, config
edits and cleanup the pipeline performs, so they are logged and
dry-run the same way as external commands.
"""

from __future__ import annotations

import glob
import logging
import shutil
from pathlib import Path

from src.adapters.base import Adapter, ExecutionContext
from src.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'mkdir', 'copy', 'append_once', 'remove'.
        path (str): Target path (mkdir, append_once).
        source / destination (str): For 'copy'. A destination ending in
            '/' or naming an existing directory receives the file by name.
        content (str): Text to append (append_once).
        marker (str): Text whose presence means the content is already
            there (append_once, default: the first content line).
        patterns (list[str]): Glob patterns to delete (remove).
    """

    _REQUIRED = {
        "mkdir": ("path",),
        "copy": ("source", "destination"),
        "append_once": ("path", "content"),
        "remove": ("patterns",),
    }

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self._REQUIRED:
            valid = ", ".join(sorted(self._REQUIRED))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"

        for key in self._REQUIRED[operation]:
            if not context.action.params.get(key):
                return False, f"Missing required param: '{key}' for {operation} operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]

        try:
            if operation == "mkdir":
                return self._mkdir(context, self._resolve(context, "path"))
            elif operation == "copy":
                return self._copy(context)
            elif operation == "append_once":
                return self._append_once(context, self._resolve(context, "path"))
            elif operation == "remove":
                return self._remove(context)
            else:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {operation}",
                )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation},
            )

    @staticmethod
    def _resolve(ctx: ExecutionContext, key: str) -> Path:
        target = Path(ctx.action.params[key])
        if not target.is_absolute():
            target = Path(ctx.working_dir) / target
        return target

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> Receipt:
        target.mkdir(parents=True, exist_ok=True)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Directory ready: {target}",
            metadata={"path": str(target)},
        )

    def _copy(self, ctx: ExecutionContext) -> Receipt:
        source = self._resolve(ctx, "source")
        raw_dest = str(ctx.action.params["destination"])
        destination = self._resolve(ctx, "destination")

        if not source.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"File not found: {source}",
            )

        if raw_dest.endswith("/") or destination.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            destination = destination / source.name
        else:
            destination.parent.mkdir(parents=True, exist_ok=True)

        shutil.copy2(source, destination)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Copied {source} -> {destination}",
            metadata={"source": str(source), "destination": str(destination)},
        )

    def _append_once(self, ctx: ExecutionContext, target: Path) -> Receipt:
        content: str = ctx.action.params["content"]
        marker: str = ctx.action.params.get("marker") or content.strip().splitlines()[0]

        if not target.is_file():
            return Receipt.failure(
                adapter=self.name,
                action_id=ctx.action.id,
                error=f"File not found: {target}",
            )

        existing = target.read_text(encoding="utf-8")
        if marker in existing:
            return Receipt.success(
                adapter=self.name,
                action_id=ctx.action.id,
                output=f"Already present in {target}: {marker}",
                metadata={"path": str(target), "appended": False},
            )

        prefix = "\n" if existing and not existing.endswith("\n") else ""
        if not content.endswith("\n"):
            content += "\n"
        with target.open("a", encoding="utf-8") as f:
            f.write(prefix + content)

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Appended {len(content)} bytes to {target}",
            metadata={"path": str(target), "appended": True},
        )

    def _remove(self, ctx: ExecutionContext) -> Receipt:
        removed: list[str] = []
        for pattern in ctx.action.params["patterns"]:
            if not Path(pattern).is_absolute():
                pattern = str(Path(ctx.working_dir) / pattern)
            matches = sorted(glob.glob(pattern))
            if not matches:
                logger.debug("File/directory not found: %s", pattern)
                continue
            for match in matches:
                path = Path(match)
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
                removed.append(match)

        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output="\n".join(removed),
            metadata={"removed": removed, "count": len(removed)},
        )
