"""Referee: per-player outcome tally and fidelity reporting.

One Referee instance per match. Records the ResultCategory of every turn
for every player, remembers who was disqualified and why, and produces a
fidelity report at match end.
"""

from __future__ import annotations

from collections import Counter, defaultdict

from racejudge.core.types import ResultCategory, category_name

# Categories that take a player out of the race when the player engine
# produces them
DISQUALIFYING = frozenset({
    ResultCategory.TIMED_OUT,
    ResultCategory.DIED,
    ResultCategory.INVALID,
})


class Referee:
    """Tracks turn outcomes and disqualifications for a single match."""

    def __init__(self) -> None:
        self._outcomes: dict[str, Counter] = defaultdict(Counter)
        self._disqualified: dict[str, str] = {}
        self._order: list[str] = []

    def register(self, player: str) -> None:
        """Make sure ``player`` appears in the report even with no turns."""
        if player not in self._order:
            self._order.append(player)

    def record(self, player: str, category: ResultCategory) -> bool:
        """Record one turn outcome. Returns True if it disqualifies."""
        self.register(player)
        self._outcomes[player][category] += 1
        if category in DISQUALIFYING:
            self.disqualify(player, category_name(category))
            return True
        return False

    def disqualify(self, player: str, reason: str) -> None:
        self.register(player)
        # First reason wins
        self._disqualified.setdefault(player, reason)

    def is_disqualified(self, player: str) -> bool:
        return player in self._disqualified

    def get_fidelity_report(self) -> dict:
        report = {}
        for player in self._order:
            counts = self._outcomes[player]
            entry = {"turns": sum(counts.values())}
            for category in ResultCategory:
                entry[category_name(category)] = counts.get(category, 0)
            entry["disqualified"] = self._disqualified.get(player)
            report[player] = entry
        return report
