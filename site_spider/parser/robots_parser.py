# File: site_spider/parser/robots_parser.py
"""site_spider.parser.robots_parser: разбор robots.txt и проверка путей (RFC 9309)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

__all__ = ("RobotsTxtRules",)


@dataclass
class _Group:
    agents: List[str] = field(default_factory=list)
    directives: List[Tuple[str, str]] = field(default_factory=list)


class RobotsTxtRules:
    """
    Парсит robots.txt и отвечает на вопрос "можно ли загрузить путь".
    Пустой Disallow разрешает все пути; побеждает самое длинное совпадение,
    при равной длине Allow сильнее Disallow.
    """
    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str) -> None:
        self._groups: List[_Group] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    @classmethod
    def allow_all(cls) -> RobotsTxtRules:
        return cls("")

    def can_fetch(self, user_agent: str, path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group.directives:
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def _parse(self, text: str) -> None:
        current: Optional[_Group] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line or ":" not in line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                # consecutive User-agent lines share one group
                if current is None or current.directives:
                    current = _Group()
                    self._groups.append(current)
                current.agents.append(val.lower())
            elif key in ("allow", "disallow"):
                if key == "disallow" and val == "":
                    continue
                if current is None:
                    current = _Group(agents=["*"])
                    self._groups.append(current)
                current.directives.append((key, val))

    def _match_group(self, user_agent: str) -> Optional[_Group]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group.agents):
                return group
        for group in self._groups:
            if "*" in group.agents:
                return group
        return None

    def _match_path(self, path: str, pattern: str) -> bool:
        if pattern not in self._regex_cache:
            esc = re.escape(pattern).replace(r"\*", ".*")
            if pattern.endswith("$"):
                esc = esc[:-2] + "$"
            self._regex_cache[pattern] = re.compile(f"^{esc}")
        return bool(self._regex_cache[pattern].match(path))

    @classmethod
    def _rule_len(cls, pattern: str) -> int:
        return len(cls._WILDCARD_RE.sub("", pattern))
