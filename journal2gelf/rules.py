"""Per-facility normalization rules.

A rule is a regex matched against the short message of an entry. The
matched span is removed from the message; a named group ``Priority``,
when present, names the severity word embedded in the text.
"""

import re
from dataclasses import dataclass

PRIORITY_GROUP = "Priority"

# Application-emitted "YYYY-MM-DD HH:MM:SS[,fraction] " prefix, stripped
# from every message regardless of facility.
TIMESTAMP_PATTERN = re.compile(
    r"^20[0-9]{2}[/\-][01][0-9][/\-][0-3][0-9] [0-2]?[0-9]:[0-5][0-9]:[0-5][0-9](?:,[0-9]+)? "
)

DEFAULT_PATTERNS: dict[str, str] = {
    "nginx": r"\[(?P<Priority>[a-z]+)\] ",
    "java": r"(?P<Priority>[A-Z]+): ",
    "mysqld": r"^[0-9]+ \[(?P<Priority>[A-Z][a-z]+)\] ",
    "searchd": r"^\[([A-Z][a-z]{2} ){2} [0-9]+ [0-2][0-9]:[0-5][0-9]:[0-5][0-9]\.[0-9]{3} 20[0-9]{2}\] \[[ 0-9]+\] ",
    "jenkins": r"^[A-Z][a-z]{2} [01][0-9], 20[0-9]{2} [0-2]?[0-9]:[0-5][0-9]:[0-5][0-9] [AP]M ",
    "php-fpm": r"^pool [a-z_0-9\[\]\-]+: ",
    "syncthing": r"^\[[0-9A-Z]{5}\] [0-2][0-9]:[0-5][0-9]:[0-5][0-9] (?P<Priority>INFO): ",
}


@dataclass(frozen=True)
class NormalizationRule:
    facility: str
    pattern: re.Pattern
    priority_group: str | None = None


def compile_rule(facility: str, pattern: str) -> NormalizationRule:
    """Compile a pattern into a rule. Raises re.error on a bad pattern."""
    compiled = re.compile(pattern)
    group = PRIORITY_GROUP if PRIORITY_GROUP in compiled.groupindex else None
    return NormalizationRule(facility=facility, pattern=compiled, priority_group=group)


class RuleRegistry:
    """Read-only facility -> rule mapping, built once at startup."""

    def __init__(self, rules: list[NormalizationRule]):
        self._rules = {rule.facility: rule for rule in rules}

    def lookup(self, *keys: str) -> NormalizationRule | None:
        """Return the rule for the first key that has one."""
        for key in keys:
            if key and key in self._rules:
                return self._rules[key]
        return None

    def __contains__(self, facility: str) -> bool:
        return facility in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    @property
    def facilities(self) -> list[str]:
        return sorted(self._rules)


def build_registry(extra_patterns: dict[str, str] | None = None) -> RuleRegistry:
    """Build the registry from the built-in patterns plus any overrides."""
    patterns = dict(DEFAULT_PATTERNS)
    if extra_patterns:
        patterns.update(extra_patterns)
    return RuleRegistry([compile_rule(facility, p) for facility, p in patterns.items()])
