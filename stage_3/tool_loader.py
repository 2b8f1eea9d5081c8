"""
Tool Loader
===========

Load analysis tool configurations from YAML files
"""

from pathlib import Path
from typing import List, Optional

import yaml

TOOLS_DIR = Path(__file__).parent / "tools"


class ToolConfig:
    """Tool configuration loaded from YAML"""

    def __init__(self, tool_id: str, config: dict):
        self.id = tool_id
        self.name = config.get("name", tool_id)
        self.version = config.get("version", "")
        self.image = config.get("image")
        self.output = config.get("output", "output.json")

        local = config.get("local") or {}
        self.local_command: List[str] = list(local.get("command") or [])

        docker = config.get("docker") or {}
        self.docker_entrypoint: str = docker.get("entrypoint", "")
        self.docker_environment: dict = dict(docker.get("environment") or {})

        self.config = config

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "image": self.image,
            "output": self.output,
            "local": {"command": self.local_command},
            "docker": {
                "entrypoint": self.docker_entrypoint,
                "environment": self.docker_environment,
            },
        }


def load_tool(tool_id: str, tools_dir: Path = TOOLS_DIR) -> Optional[ToolConfig]:
    """
    Load tool configuration from <tools_dir>/<tool_id>/config.yaml

    Returns:
        ToolConfig or None if not found
    """
    config_path = tools_dir / tool_id / "config.yaml"
    if not config_path.exists():
        return None

    with open(config_path, "r", encoding="utf8") as f:
        config = yaml.safe_load(f) or {}

    if "alias" in config:
        return load_tool(config["alias"], tools_dir)

    return ToolConfig(tool_id, config)
