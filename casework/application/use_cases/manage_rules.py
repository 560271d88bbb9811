"""RuleAdministration — create and edit assignment rules with write-time validation."""

from __future__ import annotations

import logging

from casework.application.ports.handler_repo import HandlerRepository
from casework.application.ports.rule_repo import RuleRepository
from casework.domain.entities.assignment_rule import AmountRange, AssignmentRule
from casework.domain.exceptions import InvalidRuleDefinition, RuleNotFound
from casework.domain.value_objects.enums import WILDCARD, AssignmentStrategy, CasePriority

logger = logging.getLogger(__name__)

PRIORITY_LEVELS = frozenset({WILDCARD, *(p.value for p in CasePriority)})

EDITABLE_FIELDS = frozenset(
    {
        "name",
        "priority",
        "strategy",
        "is_active",
        "carrier",
        "issue_type",
        "priority_level",
        "amount_range",
        "assign_to_role",
        "assign_to_handler_id",
    }
)

# The rest of EDITABLE_FIELDS are criteria or targets where None means "unset"
REQUIRED_FIELDS = frozenset({"name", "priority", "strategy", "is_active"})


def parse_amount_range(raw: dict | AmountRange | None) -> AmountRange | None:
    """Build an AmountRange from a {"min": .., "max": ..} mapping."""
    if raw is None or isinstance(raw, AmountRange):
        return raw
    try:
        low, high = raw["min"], raw["max"]
    except (KeyError, TypeError):
        raise InvalidRuleDefinition("Amount range needs both 'min' and 'max'") from None
    if type(low) is not int or type(high) is not int:
        raise InvalidRuleDefinition("Amount range bounds must be integer cents")
    return AmountRange(min=low, max=high)


def check_rule_definition(rule: AssignmentRule) -> None:
    """Reject malformed rules before they ever reach matching."""
    if not rule.name or not rule.name.strip():
        raise InvalidRuleDefinition("Rule name must not be empty")
    if not isinstance(rule.priority, int) or isinstance(rule.priority, bool):
        raise InvalidRuleDefinition("Rule priority must be an integer")
    if not isinstance(rule.is_active, bool):
        raise InvalidRuleDefinition("is_active must be true or false")
    if not isinstance(rule.strategy, AssignmentStrategy):
        raise InvalidRuleDefinition(f"Unknown strategy: {rule.strategy!r}")
    if rule.carrier is not None and not rule.carrier.strip():
        raise InvalidRuleDefinition("Carrier must be omitted, 'ALL' or a carrier name")
    if rule.issue_type is not None and not rule.issue_type.strip():
        raise InvalidRuleDefinition("Issue type must be omitted or non-empty")
    if rule.priority_level is not None and rule.priority_level not in PRIORITY_LEVELS:
        raise InvalidRuleDefinition(
            f"Priority level must be one of {', '.join(sorted(PRIORITY_LEVELS))}"
        )
    if rule.amount_range is not None:
        if rule.amount_range.min < 0 or rule.amount_range.max < 0:
            raise InvalidRuleDefinition("Amount range bounds must not be negative")
        if rule.amount_range.min > rule.amount_range.max:
            raise InvalidRuleDefinition("Amount range min must not exceed max")


class RuleAdministration:
    def __init__(self, rule_repo: RuleRepository, handler_repo: HandlerRepository):
        self._rules = rule_repo
        self._handlers = handler_repo

    async def create_rule(self, rule: AssignmentRule) -> AssignmentRule:
        rule.amount_range = parse_amount_range(rule.amount_range)
        await self._validate(rule)
        rule.assignment_count = 0
        saved = await self._rules.save(rule)
        logger.info(
            "Created rule %d '%s' (priority=%d, strategy=%s)",
            saved.id, saved.name, saved.priority, saved.strategy.value,
        )
        return saved

    async def update_rule(self, rule_id: int, **changes) -> AssignmentRule:
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise InvalidRuleDefinition(f"Fields not editable: {', '.join(sorted(unknown))}")

        rule = await self._rules.get_by_id(rule_id)
        if rule is None:
            raise RuleNotFound(rule_id)

        cleared = sorted(
            name for name in REQUIRED_FIELDS if name in changes and changes[name] is None
        )
        if cleared:
            raise InvalidRuleDefinition(f"Fields cannot be null: {', '.join(cleared)}")

        for name, value in changes.items():
            if name == "amount_range":
                value = parse_amount_range(value)
            elif name == "strategy":
                value = _parse_strategy(value)
            setattr(rule, name, value)
        await self._validate(rule)
        return await self._rules.update(rule)

    async def list_rules(self, active_only: bool = False) -> list[AssignmentRule]:
        if active_only:
            return await self._rules.get_active()
        return await self._rules.get_all()

    async def _validate(self, rule: AssignmentRule) -> None:
        check_rule_definition(rule)
        if rule.assign_to_handler_id is not None:
            if await self._handlers.get_by_id(rule.assign_to_handler_id) is None:
                raise InvalidRuleDefinition(
                    f"Target handler {rule.assign_to_handler_id} does not exist"
                )


def _parse_strategy(value: str | AssignmentStrategy) -> AssignmentStrategy:
    try:
        return AssignmentStrategy(value)
    except ValueError:
        raise InvalidRuleDefinition(f"Unknown strategy: {value!r}") from None
