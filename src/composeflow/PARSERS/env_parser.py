"""
Normalization of a service's ``environment`` section.
"""
from typing import Any, Dict


class EnvParser:
    """
    Parser for compose ``environment`` values, which come either as a
    mapping or as a list of ``KEY=VALUE`` strings.
    """
    @staticmethod
    def parse(env_spec: Any) -> Dict[str, str]:
        """
        Normalizes an environment section into a mapping.

        Args:
            env_spec: A mapping, a list of ``KEY=VALUE`` strings, or anything
                else (treated as empty).

        Returns:
            Dict[str, str]: Environment variables in document order.
        """
        if isinstance(env_spec, dict):
            return {str(k): EnvParser._to_text(v) for k, v in env_spec.items()}
        if isinstance(env_spec, list):
            return EnvParser.parse_entries(env_spec)
        return {}

    @staticmethod
    def parse_entries(entries: list) -> Dict[str, str]:
        """
        Splits ``KEY=VALUE`` strings on the first ``=``; the value may itself
        contain ``=``. Entries without ``=`` are dropped.
        """
        env = {}
        for entry in entries:
            if not isinstance(entry, str) or '=' not in entry:
                continue
            key, value = entry.split('=', 1)
            env[key] = value
        return env

    @staticmethod
    def _to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
