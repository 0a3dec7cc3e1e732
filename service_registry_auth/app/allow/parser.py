"""
Parser for the ``allow`` option.
"""

import re
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Tuple

from shared.errors import ConfigError


_TEAM_PATTERN = re.compile(r"^(?P<name>[^()|]+?)\s*(?:\((?P<roles>[^()]*)\))?$")


def parse_allow(allow: str) -> Dict[str, List[str]]:
    """Parse ``"foo, bar(admin|owner)"`` into ``{"foo": [], "bar": ["admin", "owner"]}``.

    An empty role list means any role held in the team is accepted.
    Raises ConfigError on a token without a team name.
    """
    if not isinstance(allow, str):
        raise ConfigError("allow option must be a string", details={"allow": repr(allow)})

    result: Dict[str, List[str]] = {}
    for token in re.split(r"\s*,\s*", allow.strip()):
        match = _TEAM_PATTERN.match(token.strip())
        if not match:
            raise ConfigError(
                f"Malformed allow entry '{token}'",
                details={"allow": allow, "entry": token}
            )

        roles = match.group("roles")
        result[match.group("name")] = (
            [role.strip() for role in roles.split("|") if role.strip()] if roles else []
        )

    return result


class AllowTable(Mapping[str, Tuple[str, ...]]):
    """Immutable team -> accepted roles table built from the ``allow`` option."""

    def __init__(self, allow: str):
        self._teams = MappingProxyType({
            team: tuple(roles) for team, roles in parse_allow(allow).items()
        })

    def __getitem__(self, team: str) -> Tuple[str, ...]:
        return self._teams[team]

    def __iter__(self) -> Iterator[str]:
        return iter(self._teams)

    def __len__(self) -> int:
        return len(self._teams)

    def __repr__(self) -> str:
        return f"AllowTable({dict(self._teams)!r})"

    def permits(self, team: str, role: str) -> bool:
        """Whether holding ``role`` in ``team`` grants access."""
        if team not in self._teams:
            return False

        roles = self._teams[team]
        return not roles or role in roles

    def filter(self, privileges: Mapping[str, str]) -> List[str]:
        """Teams of a resolved privilege map that pass the table, in map order."""
        return [team for team, role in privileges.items() if self.permits(team, role)]
