"""
Tool Executors
==============

Run an analysis tool against a contract written to a temporary directory,
either on the host (subprocess) or in a Docker container. The directory is
removed after every run.
"""

import os
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional

import docker
import docker.errors
import requests
import solcx

import config
from stage_2.compiler import ensure_solc

from .tool_loader import ToolConfig
from .utils import CONTRACT_FILENAME, contract_workspace, read_text

CONTAINER_DIR = "/sb"


@dataclass
class ExecutionResult:
    exit_code: Optional[int]
    logs: List[str] = field(default_factory=list)
    output: Optional[str] = None


class LocalExecutor:
    """Execute tools installed on the host"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def execute(self, solidity_code: str, tool: ToolConfig, timeout: int = 120) -> ExecutionResult:
        if not tool.local_command:
            raise RuntimeError(f"Tool {tool.id} has no local command configured")

        ensure_solc()
        with contract_workspace(solidity_code) as workdir:
            output_path = os.path.join(workdir, tool.output)
            substitutions = {
                "$FILENAME": os.path.join(workdir, CONTRACT_FILENAME),
                "$OUTPUT": output_path,
                "$SOLC": str(solcx.install.get_executable()),
                "$TIMEOUT": str(timeout),
            }
            command = [substitutions.get(arg, arg) for arg in tool.local_command]

            if self.verbose:
                print(f"    [DEBUG] Command: {' '.join(command)}")

            try:
                proc = subprocess.run(
                    command,
                    cwd=workdir,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
                exit_code = proc.returncode
                logs = (proc.stdout + "\n" + proc.stderr).splitlines()
            except subprocess.TimeoutExpired:
                exit_code, logs = None, []
            except FileNotFoundError:
                exit_code, logs = 127, [f"{command[0]}: command not found"]

            return ExecutionResult(exit_code=exit_code, logs=logs, output=read_text(output_path))


class DockerExecutor:
    """Execute tools in Docker containers"""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        try:
            self._client = docker.from_env()
            self._client.info()
        except Exception as e:
            raise RuntimeError(f"Docker not available: {e}. Is Docker installed and running?")

    def execute(self, solidity_code: str, tool: ToolConfig, timeout: int = 120) -> ExecutionResult:
        if not tool.image:
            raise RuntimeError(f"Tool {tool.id} has no Docker image specified")

        self._ensure_image(tool.image)

        with contract_workspace(solidity_code) as workdir:
            command = self._build_command(tool, timeout)
            environment = {"SOLC_VERSION": config.SOLC_VERSION}
            environment.update(tool.docker_environment)

            container = None
            exit_code = None
            logs: List[str] = []
            try:
                container = self._client.containers.run(
                    image=tool.image,
                    volumes={workdir: {"bind": CONTAINER_DIR, "mode": "rw"}},
                    command=["/bin/sh", "-c", command],
                    detach=True,
                    user="root",
                    working_dir=CONTAINER_DIR,
                    environment=environment,
                )
                try:
                    result = container.wait(timeout=timeout)
                    exit_code = result["StatusCode"]
                except (requests.exceptions.ReadTimeout, requests.exceptions.ConnectionError):
                    try:
                        container.stop(timeout=10)
                    except docker.errors.APIError:
                        pass
                    exit_code = None

                logs = container.logs().decode("utf8", errors="replace").splitlines()
            finally:
                if container is not None:
                    try:
                        container.remove(force=True)
                    except docker.errors.APIError as e:
                        if self.verbose:
                            print(f"    [DEBUG] Container cleanup failed: {e}")

            output = read_text(os.path.join(workdir, tool.output))
            return ExecutionResult(exit_code=exit_code, logs=logs, output=output)

    def _ensure_image(self, image: str) -> None:
        """Pull the image if it is not available locally"""
        try:
            if not self._client.images.list(image):
                print(f"  📦 Pulling Docker image: {image}")
                self._client.images.pull(image)
        except docker.errors.DockerException as e:
            raise RuntimeError(f"Failed to load Docker image {image}: {e}")

    def _build_command(self, tool: ToolConfig, timeout: int) -> str:
        if not tool.docker_entrypoint:
            raise RuntimeError(f"Tool {tool.id} has no Docker entrypoint specified")

        command = tool.docker_entrypoint
        command = command.replace("$FILENAME", f"{CONTAINER_DIR}/{CONTRACT_FILENAME}")
        command = command.replace("$OUTPUT", f"{CONTAINER_DIR}/{tool.output}")
        command = command.replace("$TIMEOUT", str(timeout))

        if self.verbose:
            print(f"    [DEBUG] Command after substitution: {command}")

        return command


def get_executor(mode: Optional[str] = None, verbose: bool = False):
    """Executor for config.SLITHER_MODE ('local' or 'docker')"""
    mode = (mode or config.SLITHER_MODE).lower()
    if mode == "docker":
        return DockerExecutor(verbose=verbose)
    return LocalExecutor(verbose=verbose)
