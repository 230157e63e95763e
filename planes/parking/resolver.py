"""
Condition resolution

Picks the one condition in force on a side at an instant.
"""

from datetime import datetime
from typing import Iterable, List

from .conditions import ConditionCategory, ConditionRule, Side


class ConditionResolver:
    """First-match resolution over parser-ordered rules"""

    @staticmethod
    def rules_for_side(rules: Iterable[ConditionRule], side: Side) -> List[ConditionRule]:
        """Rules that apply to a side: its own plus those for both sides"""
        return [rule for rule in rules if rule.applies_to(side)]

    @staticmethod
    def has_rules(rules: Iterable[ConditionRule], side: Side) -> bool:
        return any(rule.applies_to(side) for rule in rules)

    @staticmethod
    def resolve(rules: Iterable[ConditionRule], side: Side, instant: datetime) -> ConditionCategory:
        """
        Return the category of the first applicable rule containing instant

        Pure function of its arguments. Returns ConditionCategory.UNKNOWN
        when no rule matches.
        """
        for rule in rules:
            if rule.applies_to(side) and rule.time_span.contains(instant):
                return rule.category
        return ConditionCategory.UNKNOWN
