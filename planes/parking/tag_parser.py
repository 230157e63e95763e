"""
Parking tag parser

Turns an entity's raw tags into an ordered list of time-scoped condition
rules. Raw tag strings are not looked at anywhere else.

Recognized tags (s is left, right or both; both and unsided are equivalent):
    parking:condition[:s]                  base condition
    parking:condition[:s]:time_interval    base condition holds during this interval
    parking:condition[:s]:default          condition outside the interval
    parking:condition[:s]:conditional      "value @ (hours); value @ (hours)"
    parking:lane[:s]                       legacy no_parking/no_stopping/no/separate

Each suffix is looked up per side: a left/right tag overrides the unsided
one, and a side that does not define a suffix inherits the unsided value.
So parking:condition=free with parking:condition:left:conditional keeps
'free' as the left side's fallback outside the conditional's hours.

Output order is the order the resolver matches in: timed rules before
unconditional ones, and within each group conditional, time_interval, then
base/default, left before right.
"""

from typing import Callable, Dict, List, Optional, Tuple
from loguru import logger

from .conditions import ALWAYS, ConditionCategory, ConditionRule, Side
from .opening_hours import parse_opening_hours
from ..config import get_config
from ..exceptions import MalformedTag


CONDITION_PREFIX = "parking:condition"
LANE_PREFIX = "parking:lane"

VALUE_CATEGORIES: Dict[str, ConditionCategory] = {
    "free": ConditionCategory.FREE,
    "disc": ConditionCategory.DISC,
    "no_parking": ConditionCategory.NO_PARKING,
    "no_stopping": ConditionCategory.NO_STOPPING,
    "no": ConditionCategory.NOT_APPLICABLE,
    "ticket": ConditionCategory.TICKET,
    "customers": ConditionCategory.CUSTOMERS,
    "residents": ConditionCategory.RESIDENTS,
    "disabled": ConditionCategory.DISABLED,
    "separate": ConditionCategory.SEPARATELY_MAPPED,
}

LANE_CATEGORIES: Dict[str, ConditionCategory] = {
    "no_parking": ConditionCategory.NO_PARKING,
    "no_stopping": ConditionCategory.NO_STOPPING,
    "fire_lane": ConditionCategory.NO_STOPPING,
    "no": ConditionCategory.NOT_APPLICABLE,
    "separate": ConditionCategory.SEPARATELY_MAPPED,
}

FEE_CATEGORIES: Dict[str, ConditionCategory] = {
    "yes": ConditionCategory.TICKET,
    "no": ConditionCategory.FREE,
}


class TagConditionParser:
    """Parses parking tags into ConditionRule lists"""

    def __init__(self):
        self.config = get_config()

    def road_class(self, tags: Dict[str, str]) -> Optional[str]:
        """
        Classify a way as 'major' or 'minor' road

        Returns None for ways that do not carry parking lanes (no highway
        tag, or footways, cycleways and the like).
        """
        highway = tags.get("highway")
        if not highway:
            return None
        if highway in self.config.lanes.major_highways:
            return "major"
        if highway in self.config.lanes.minor_highways:
            return "minor"
        return None

    def is_lane_bearing(self, tags: Dict[str, str]) -> bool:
        return self.road_class(tags) is not None

    def parse(
        self,
        tags: Dict[str, str],
        area: bool = False,
        entity_id: Optional[int] = None
    ) -> List[ConditionRule]:
        """
        Parse tags into rules in priority order

        Never raises for bad tag values: a rule with an unreadable value or
        time expression degrades to ConditionCategory.UNKNOWN.

        Args:
            tags: raw OSM tags
            area: parking areas and points have no sides; fee/access tags are
                used when no parking:condition tag is present
            entity_id: only used in log messages

        Returns:
            Ordered list of ConditionRule
        """
        if area:
            rules = self._group_rules(tags, None, Side.BOTH, entity_id)
            if not rules:
                rules = self._area_fallback_rules(tags, entity_id)
            return self._order(rules)

        if not has_sided_tags(tags):
            return self._order(self._group_rules(tags, None, Side.BOTH, entity_id))

        left = self._group_rules(tags, "left", Side.LEFT, entity_id)
        right = self._group_rules(tags, "right", Side.RIGHT, entity_id)
        return self._order(left + right)

    @staticmethod
    def _order(rules: List[ConditionRule]) -> List[ConditionRule]:
        # sorted() is stable, so source order survives within each group
        return sorted(rules, key=lambda rule: 0 if rule.is_timed else 1)

    def _group_rules(
        self,
        tags: Dict[str, str],
        side_name: Optional[str],
        side: Side,
        entity_id: Optional[int]
    ) -> List[ConditionRule]:
        """Rules for one side, inheriting unsided suffixes (side_name None means unsided/both)"""
        lookup = self._lookup(tags, CONDITION_PREFIX, side_name)

        base = lookup("")
        interval = lookup(":time_interval")
        default = lookup(":default")
        conditional = lookup(":conditional")

        rules: List[ConditionRule] = []

        if conditional is not None:
            key, value = conditional
            rules.extend(self._conditional_rules(key, value, side, VALUE_CATEGORIES, entity_id))

        if base is not None and interval is not None:
            key, value = interval
            category = self._category(base[0], base[1], VALUE_CATEGORIES, entity_id)
            rules.append(self._timed_rule(key, value, category, side, entity_id))
            if default is not None:
                rules.append(ConditionRule(
                    ALWAYS, self._category(default[0], default[1], VALUE_CATEGORIES, entity_id), side
                ))
        elif base is not None:
            rules.append(ConditionRule(
                ALWAYS, self._category(base[0], base[1], VALUE_CATEGORIES, entity_id), side
            ))
        elif default is not None:
            rules.append(ConditionRule(
                ALWAYS, self._category(default[0], default[1], VALUE_CATEGORIES, entity_id), side
            ))

        if side_name is not None and rules and all(rule.is_timed for rule in rules):
            # Outside its own hours a side falls back to the unsided base
            unsided_base = self._lookup(tags, CONDITION_PREFIX, None)("")
            if unsided_base is not None and unsided_base != base:
                rules.append(ConditionRule(
                    ALWAYS, self._category(unsided_base[0], unsided_base[1], VALUE_CATEGORIES, entity_id), side
                ))

        if not rules:
            lane = self._lookup(tags, LANE_PREFIX, side_name)("")
            if lane is not None and lane[1] in LANE_CATEGORIES:
                rules.append(ConditionRule(ALWAYS, LANE_CATEGORIES[lane[1]], side))

        return rules

    def _area_fallback_rules(self, tags: Dict[str, str], entity_id: Optional[int]) -> List[ConditionRule]:
        rules: List[ConditionRule] = []
        if "fee:conditional" in tags:
            rules.extend(self._conditional_rules(
                "fee:conditional", tags["fee:conditional"], Side.BOTH, FEE_CATEGORIES, entity_id
            ))
        if tags.get("access") == "customers":
            rules.append(ConditionRule(ALWAYS, ConditionCategory.CUSTOMERS, Side.BOTH))
        elif tags.get("capacity:disabled") and tags.get("capacity:disabled") == tags.get("capacity"):
            rules.append(ConditionRule(ALWAYS, ConditionCategory.DISABLED, Side.BOTH))
        if tags.get("fee") in FEE_CATEGORIES:
            rules.append(ConditionRule(ALWAYS, FEE_CATEGORIES[tags["fee"]], Side.BOTH))
        return rules

    def _conditional_rules(
        self,
        key: str,
        value: str,
        side: Side,
        categories: Dict[str, ConditionCategory],
        entity_id: Optional[int]
    ) -> List[ConditionRule]:
        rules = []
        try:
            parts = split_conditional(key, value)
        except MalformedTag as e:
            self._log_malformed(e, entity_id)
            return [ConditionRule(ALWAYS, ConditionCategory.UNKNOWN, side)]
        for part_value, condition in parts:
            category = self._category(key, part_value, categories, entity_id)
            rules.append(self._timed_rule(key, condition, category, side, entity_id))
        return rules

    def _timed_rule(
        self,
        key: str,
        expression: str,
        category: ConditionCategory,
        side: Side,
        entity_id: Optional[int]
    ) -> ConditionRule:
        try:
            return ConditionRule(parse_opening_hours(expression, key), category, side)
        except MalformedTag as e:
            self._log_malformed(e, entity_id)
            return ConditionRule(ALWAYS, ConditionCategory.UNKNOWN, side)

    def _category(
        self,
        key: str,
        value: str,
        categories: Dict[str, ConditionCategory],
        entity_id: Optional[int]
    ) -> ConditionCategory:
        category = categories.get(value.strip())
        if category is None:
            self._log_malformed(MalformedTag(key, value, "unknown condition"), entity_id)
            return ConditionCategory.UNKNOWN
        return category

    @staticmethod
    def _lookup(
        tags: Dict[str, str],
        prefix: str,
        side_name: Optional[str]
    ) -> Callable[[str], Optional[Tuple[str, str]]]:
        """Return a function finding (key, value) for a suffix on one side"""
        prefixes = [f"{prefix}:both", prefix]
        if side_name is not None:
            prefixes.insert(0, f"{prefix}:{side_name}")

        def find(suffix: str) -> Optional[Tuple[str, str]]:
            for candidate in prefixes:
                key = candidate + suffix
                value = tags.get(key)
                if value is not None and value.strip():
                    return key, value
            return None

        return find

    @staticmethod
    def _log_malformed(error: MalformedTag, entity_id: Optional[int]) -> None:
        where = f" on {entity_id}" if entity_id is not None else ""
        logger.warning(f"{error}{where}; treating as unknown")


def has_sided_tags(tags: Dict[str, str]) -> bool:
    """True if any parking:condition or parking:lane tag names the left or right side"""
    sided = tuple(
        f"{prefix}:{side}"
        for prefix in (CONDITION_PREFIX, LANE_PREFIX)
        for side in ("left", "right")
    )
    return any(key == s or key.startswith(s + ":") for key in tags for s in sided)


def split_conditional(key: str, value: str) -> List[Tuple[str, str]]:
    """
    Split a conditional restriction into (value, condition) pairs

    "no @ (Mo-Fr 08:00-18:00); ticket @ Sa" -> [("no", "Mo-Fr 08:00-18:00"), ("ticket", "Sa")]
    Semicolons inside parentheses belong to the condition.
    """
    parts = []
    depth = 0
    current = ""
    for char in value:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise MalformedTag(key, value, "unbalanced parentheses")
        if char == ";" and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += char
    if depth != 0:
        raise MalformedTag(key, value, "unbalanced parentheses")
    parts.append(current)

    pairs = []
    for part in parts:
        if not part.strip():
            continue
        restriction, at, condition = part.partition("@")
        if not at or not restriction.strip() or not condition.strip():
            raise MalformedTag(key, value, f"expected 'value @ condition', got {part.strip()!r}")
        condition = condition.strip()
        if condition.startswith("(") and condition.endswith(")"):
            condition = condition[1:-1].strip()
        pairs.append((restriction.strip(), condition))
    if not pairs:
        raise MalformedTag(key, value, "no restrictions")
    return pairs
