import pytest

from resolvenow.core import case_rules
from resolvenow.db.enums import CaseStatus, CaseType, Department


@pytest.mark.parametrize(
    "case_type,department",
    [
        (CaseType.CONSUMER, Department.CONSUMER_AFFAIRS),
        (CaseType.EMPLOYMENT, Department.EMPLOYMENT),
        (CaseType.CONTRACT, Department.LEGAL),
        (CaseType.PROPERTY, Department.PROPERTY),
        (CaseType.FAMILY, Department.FAMILY),
        (CaseType.OTHER, Department.GENERAL),
    ],
)
def test_department_mapping(case_type, department):
    assert case_rules.department_for(case_type) == department
    assert case_rules.department_for(case_type.value) == department


def test_every_status_has_a_transition_entry():
    assert set(case_rules.ALLOWED_TRANSITIONS) == set(CaseStatus)


@pytest.mark.parametrize(
    "old,new",
    [
        ("Pending", "In Review"),
        ("Pending", "Closed"),
        ("In Review", "In Mediation"),
        ("In Review", "Resolved"),
        ("In Review", "Closed"),
        ("In Mediation", "Resolved"),
        ("In Mediation", "Closed"),
    ],
)
def test_allowed_transitions(old, new):
    assert case_rules.can_transition(old, new)


@pytest.mark.parametrize(
    "old,new",
    [
        ("Pending", "Resolved"),
        ("Pending", "In Mediation"),
        ("In Mediation", "In Review"),
        ("Resolved", "Closed"),
        ("Closed", "Pending"),
        ("Pending", "Pending"),
    ],
)
def test_rejected_transitions(old, new):
    assert not case_rules.can_transition(old, new)


def test_terminal_statuses():
    assert case_rules.is_terminal("Resolved")
    assert case_rules.is_terminal(CaseStatus.CLOSED)
    assert not case_rules.is_terminal("In Review")
    assert case_rules.requires_resolution("Resolved")
    assert not case_rules.requires_resolution("Closed")
