# archstrap/steps.py
"""
Typed installation steps and the runner that executes them in order.

Every stage builds a plain list of steps first and hands it to a StepRunner.
The runner stops at the first failure by letting the exception propagate;
nothing that already ran is undone.
"""

import shlex
from typing import Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field, SecretStr

from archstrap.executors.files import FileManager
from archstrap.utils.exceptions import FileWriteError
from archstrap.utils.executor import Executor


class CommandStep(BaseModel):
    """An external command, optionally run inside the new root via arch-chroot."""
    kind: Literal["command"] = "command"
    description: str
    command: Union[List[str], str]
    chroot: bool = False
    shell: bool = False
    stdin: Optional[SecretStr] = Field(None, description="Fed to the command's stdin, never logged.")

    @property
    def argv(self) -> List[str]:
        return self.command if isinstance(self.command, list) else shlex.split(self.command)


class FileStep(BaseModel):
    """Writes or appends a file, by default inside the new root."""
    kind: Literal["file"] = "file"
    description: str
    path: str
    content: str
    append: bool = False
    in_target: bool = True
    mode: Optional[int] = None


class LineEditStep(BaseModel):
    """A sed-like multiline regex substitution on an existing file."""
    kind: Literal["edit"] = "edit"
    description: str
    path: str
    pattern: str
    replacement: str
    in_target: bool = True


Step = Union[CommandStep, FileStep, LineEditStep]


class StepRunner:
    """Executes steps one at a time through an Executor and a FileManager."""

    def __init__(self, executor: Executor, files: Optional[FileManager] = None):
        self.executor = executor
        self.files = files or FileManager(executor)
        self.logger = executor.logger

    @property
    def mount_root(self) -> str:
        return self.executor.chroot_path

    def run_step(self, step: Step) -> None:
        if isinstance(step, CommandStep):
            self.executor.run(
                description=step.description,
                command=step.command,
                chroot=step.chroot,
                shell=step.shell,
                input=step.stdin.get_secret_value() if step.stdin is not None else None,
            )
        elif isinstance(step, FileStep):
            try:
                self.files.write_file(
                    step.path, step.content,
                    append=step.append, in_target=step.in_target,
                    mode=step.mode, description=step.description,
                )
            except OSError as e:
                raise FileWriteError(f"Failed to write {step.path}: {e}") from e
        elif isinstance(step, LineEditStep):
            try:
                self.files.replace_in_file(
                    step.path, step.pattern, step.replacement,
                    in_target=step.in_target, description=step.description,
                )
            except OSError as e:
                raise FileWriteError(f"Failed to edit {step.path}: {e}") from e
        else:
            raise TypeError(f"Unsupported step type: {type(step).__name__}")

    def run(self, steps: Iterable[Step]) -> None:
        for step in steps:
            self.run_step(step)
