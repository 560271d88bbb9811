"""RuleMatchingPolicy — find the assignment rule that governs a case."""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from casework.domain.entities.assignment_rule import AssignmentRule
from casework.domain.entities.case import CaseAttributes
from casework.domain.value_objects.enums import WILDCARD


def _criterion_holds(expected: str | None, actual: str | None) -> bool:
    if expected is None or expected == WILDCARD:
        return True
    return expected == actual


def rule_matches(rule: AssignmentRule, case: CaseAttributes) -> bool:
    """Pure function: every criterion set on the rule must hold for the case.

    Unset criteria and the "ALL" wildcard match anything. A missing claimed
    amount is treated as 0 when the rule has an amount range.
    """
    if not _criterion_holds(rule.carrier, case.carrier):
        return False
    if not _criterion_holds(rule.issue_type, case.issue_type):
        return False
    if not _criterion_holds(rule.priority_level, case.priority):
        return False
    if rule.amount_range is not None:
        if not rule.amount_range.contains(case.claimed_amount or 0):
            return False
    return True


def evaluation_order(rules: Iterable[AssignmentRule]) -> list[AssignmentRule]:
    """Active rules, highest priority first; equal priorities by ascending id."""
    active = [r for r in rules if r.is_active]
    return sorted(active, key=lambda r: (-r.priority, r.id if r.id is not None else 0))


def matching_rules(
    rules: Iterable[AssignmentRule], case: CaseAttributes
) -> Iterator[AssignmentRule]:
    """Yield every active rule satisfied by the case, in evaluation order."""
    for rule in evaluation_order(rules):
        if rule_matches(rule, case):
            yield rule


def match_rule(rules: Iterable[AssignmentRule], case: CaseAttributes) -> AssignmentRule | None:
    """Return the first satisfied rule, or None when no rule applies."""
    return next(matching_rules(rules, case), None)
