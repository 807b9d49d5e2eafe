# archstrap/executors/files.py
import os
import re
from typing import Optional

from archstrap.utils.executor import Executor


class FileManager:
    """
    Writes and patches configuration files of the system being installed.
    Paths are given as they appear inside the new system and are resolved
    below the executor's chroot path, so '/etc/hostname' lands in '/mnt/etc/hostname'.
    Logging and dry-run behaviour follow the provided Executor.
    """

    def __init__(self, executor: Executor):
        self.executor = executor
        self.logger = executor.logger

    def resolve(self, path: str, in_target: bool = True) -> str:
        """Maps a path inside the new system onto the live filesystem."""
        if not in_target:
            return path
        return os.path.join(self.executor.chroot_path, path.lstrip("/"))

    def write_file(self, path: str, content: str, append: bool = False,
                   in_target: bool = True, mode: Optional[int] = None,
                   description: Optional[str] = None) -> str:
        """
        Writes (or appends) text to a file, creating parent directories.

        Args:
            path (str): Path inside the new system (e.g., '/etc/hostname').
            content (str): Text to write.
            append (bool): Append instead of overwriting.
            in_target (bool): False writes to the live system instead of the new root.
            mode (Optional[int]): chmod applied after writing.
            description (Optional[str]): Text shown in the TUI.

        Returns:
            str: The resolved path that was written.
        """
        target = self.resolve(path, in_target)
        description = description or f"{'Appending to' if append else 'Writing'} {path}"

        if self.executor.dry_run:
            self.logger.info(f"DRY RUN: Execution skipped for: '{description}'")
            self.logger.debug(f"DRY RUN WRITE {target}:\n{content}")
            return target

        with self.logger.execution_step(description):
            os.makedirs(os.path.dirname(target) or ".", exist_ok=True)
            with open(target, "a" if append else "w", encoding="utf-8") as f:
                f.write(content)
            if mode is not None:
                os.chmod(target, mode)
            self.logger.debug(f"Wrote {len(content)} characters to {target}")

        return target

    def replace_in_file(self, path: str, pattern: str, replacement: str,
                        in_target: bool = True, description: Optional[str] = None) -> int:
        """
        Applies a multiline regular expression substitution to a file, like 'sed -i'.

        Returns:
            int: Number of substitutions made. Zero is not an error.
        """
        target = self.resolve(path, in_target)
        description = description or f"Editing {path}"

        if self.executor.dry_run:
            self.logger.info(f"DRY RUN: Execution skipped for: '{description}'")
            self.logger.debug(f"DRY RUN EDIT {target}: s/{pattern}/{replacement}/")
            return 0

        with self.logger.execution_step(description):
            with open(target, "r", encoding="utf-8") as f:
                original = f.read()

            updated, count = re.subn(pattern, replacement, original, flags=re.MULTILINE)
            if count:
                with open(target, "w", encoding="utf-8") as f:
                    f.write(updated)
            else:
                self.logger.warning(f"Pattern '{pattern}' matched nothing in {target}")

            self.logger.debug(f"{count} substitution(s) in {target}")

        return count
