from __future__ import annotations
import logging
import os
import yaml

ROS_PARAMETERS_KEY = "ros__parameters"


class FrameConfig:
    """
    YAML frame configuration.

    A file may name another file under ``extends``; it is loaded first
    (relative to the including file) and the including file is merged on
    top of it. ROS 2 parameter files are unwrapped, so the same file can
    be given to a launch file and loaded offline.
    """
    def __init__(self, file: str, logger=None):
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        if not file.endswith((".yaml", ".yml")):
            file = f"{file}.yaml"

        def load_recursive(config_path: str, stack: list[str]) -> dict:
            config_path = os.path.abspath(config_path)
            if config_path in stack:
                raise ValueError(f"Attempting to build recursive configuration: {config_path}")

            if not os.path.exists(config_path):
                self.logger.warning(f"Config file {config_path} not found.")
                return {}

            with open(config_path, "r", encoding="UTF-8") as file_handle:
                cfg = yaml.safe_load(file_handle) or {}
            cfg = unwrap_ros_parameters(cfg)

            base = {}
            if "extends" in cfg:
                parent = os.path.join(os.path.dirname(config_path), cfg.pop("extends"))
                base = load_recursive(parent, stack + [config_path])
            return _recursive_update(base, cfg)

        self.path = os.path.abspath(file)
        self._config = load_recursive(file, [])

    def section(self, prefix: str) -> dict:
        """Nested dict under a dotted prefix, empty if absent."""
        node = self._config
        for key in prefix.split(".") if prefix else []:
            if not isinstance(node, dict) or key not in node:
                return {}
            node = node[key]
        return node if isinstance(node, dict) else {}

    def __getitem__(self, item):
        return self._config.get(item)

    def __setitem__(self, key, value):
        self._config[key] = value

    def __contains__(self, item):
        return item in self._config

    def get(self, key, default=None):
        return self._config.get(key, default)

    def get_config(self):
        return self._config


def unwrap_ros_parameters(cfg: dict) -> dict:
    """Strip the ``<node>: ros__parameters:`` envelope of a ROS 2 parameter file."""
    if not isinstance(cfg, dict):
        return {}
    merged = {}
    wrapped = False
    for key, value in cfg.items():
        if isinstance(value, dict) and ROS_PARAMETERS_KEY in value:
            merged = _recursive_update(merged, value[ROS_PARAMETERS_KEY] or {})
            wrapped = True
    return merged if wrapped else cfg


def unflatten_parameters(parameters: dict) -> dict:
    """{'frames.GPS.type': 'GCSCode'} -> {'frames': {'GPS': {'type': 'GCSCode'}}}"""
    nested = {}
    for name, value in parameters.items():
        node = nested
        *parents, leaf = name.split(".")
        for key in parents:
            node = node.setdefault(key, {})
        node[leaf] = value
    return nested


def _recursive_update(base: dict, cfg: dict) -> dict:
    for k, v in cfg.items():
        if k in base and isinstance(base[k], dict) and isinstance(v, dict):
            base[k] = _recursive_update(base[k], v)
        else:
            base[k] = v
    return base
