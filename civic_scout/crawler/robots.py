# civic_scout/crawler/robots.py
"""
Parser and checker for robots.txt rules, plus a per-host cache.
"""
from __future__ import annotations

import re
from typing import Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse, urlunparse

from civic_scout.logger import get_logger

log = get_logger("robots")


class RobotsTxtRules:
    """
    Parses robots.txt (RFC 9309).
    An empty Disallow allows every path; the longest matching rule wins,
    Allow beats Disallow on a tie.
    """
    _WILDCARD_RE = re.compile(r"(\*|\$)")

    def __init__(self, text: str) -> None:
        self._groups: List[Dict[str, object]] = []
        self._regex_cache: Dict[str, re.Pattern[str]] = {}
        self._parse(text)

    def can_fetch(self, user_agent: str, path: str) -> bool:
        group = self._match_group(user_agent)
        if group is None:
            return True
        best_len = -1
        allow: Optional[bool] = None
        for directive, pattern in group["directives"]:  # type: ignore[index]
            if not self._match_path(path, pattern):
                continue
            length = self._rule_len(pattern)
            if length > best_len or (length == best_len and directive == "allow" and allow is False):
                best_len = length
                allow = directive == "allow"
        return True if allow is None else allow

    def _new_group(self) -> Dict[str, object]:
        group: Dict[str, object] = {"agents": [], "directives": []}
        self._groups.append(group)
        return group

    def _parse(self, text: str) -> None:
        current: Optional[Dict[str, object]] = None
        for raw in text.splitlines():
            line = raw.split("#", 1)[0].strip()
            if not line:
                continue
            key, _, val = line.partition(":")
            key = key.lower().strip()
            val = val.strip()
            if key == "user-agent":
                if current is None or current["directives"]:
                    current = self._new_group()
                current["agents"].append(val.lower())  # type: ignore[union-attr]
            elif key in ("allow", "disallow"):
                if key == "disallow" and val == "":
                    continue
                if current is None:
                    current = self._new_group()
                    current["agents"].append("*")  # type: ignore[union-attr]
                current["directives"].append((key, val))  # type: ignore[union-attr]

    def _match_group(self, user_agent: str) -> Optional[Dict[str, object]]:
        ua = user_agent.lower()
        for group in self._groups:
            if any(a != "*" and ua.startswith(a) for a in group["agents"]):  # type: ignore[union-attr]
                return group
        for group in self._groups:
            if "*" in group["agents"]:  # type: ignore[operator]
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


class RobotsCache:
    """Loads robots.txt once per scheme+host through *loader*."""

    def __init__(self, loader: Callable[[str], Awaitable[Optional[str]]], user_agent: str) -> None:
        self._loader = loader
        self._user_agent = user_agent
        self._rules: Dict[Tuple[str, str], Optional[RobotsTxtRules]] = {}

    async def allowed(self, url: str) -> bool:
        parsed = urlparse(url)
        origin = (parsed.scheme, parsed.netloc)
        if origin not in self._rules:
            robots_url = urlunparse((parsed.scheme, parsed.netloc, "/robots.txt", "", "", ""))
            text = await self._loader(robots_url)
            # missing robots.txt means allow all
            self._rules[origin] = RobotsTxtRules(text) if text else None
            log.debug("robots.txt for %s: %s", parsed.netloc, "loaded" if text else "none")
        rules = self._rules[origin]
        if rules is None:
            return True
        path = parsed.path or "/"
        if parsed.query:
            path += "?" + parsed.query
        return rules.can_fetch(self._user_agent, path)


__all__ = ["RobotsCache", "RobotsTxtRules"]
