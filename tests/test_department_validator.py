"""部门层级校验器的测试用例。"""

from app.packages.hierarchy.core.enums import ViolationKind
from app.packages.hierarchy.core.exceptions import CircularReferenceError, HasEmployeesError
from app.packages.hierarchy.services.department_validator import department_validator


def test_validate_create_reports_duplicate_code_and_missing_parent(db_session_fixture, make_department):
    make_department("ENG")

    violation = department_validator.validate_create(db_session_fixture, code="ENG", parent_id=None)
    assert violation is not None
    assert violation.kind == ViolationKind.DUPLICATE_CODE

    violation = department_validator.validate_create(db_session_fixture, code="NEW", parent_id=999999)
    assert violation is not None
    assert violation.kind == ViolationKind.PARENT_NOT_FOUND

    assert department_validator.validate_create(db_session_fixture, code="NEW", parent_id=None) is None


def test_validate_create_rejects_duplicate_sibling_name(db_session_fixture, make_department):
    eng = make_department("ENG")
    make_department("SW", eng, name="Software")

    violation = department_validator.validate_create(
        db_session_fixture, code="SW2", parent_id=eng.id, name="Software"
    )
    assert violation is not None
    assert violation.kind == ViolationKind.DUPLICATE_NAME
    # 不同上级下允许重名
    assert department_validator.validate_create(db_session_fixture, code="SW3", parent_id=None, name="Software") is None


def test_validate_move_order_of_checks(db_session_fixture, make_department):
    eng = make_department("ENG")
    sw = make_department("SW", eng)

    assert department_validator.validate_move(db_session_fixture, 999999, None).kind == ViolationKind.NOT_FOUND
    assert department_validator.validate_move(db_session_fixture, eng.id, 999999).kind == ViolationKind.PARENT_NOT_FOUND
    assert department_validator.validate_move(db_session_fixture, eng.id, eng.id).kind == ViolationKind.SELF_PARENT

    violation = department_validator.validate_move(db_session_fixture, eng.id, sw.id)
    assert violation.kind == ViolationKind.CIRCULAR_REFERENCE
    assert isinstance(violation.to_exception(), CircularReferenceError)

    assert department_validator.validate_move(db_session_fixture, sw.id, None) is None


def test_validate_delete_reports_children_before_employees(db_session_fixture, make_department, add_employee):
    eng = make_department("ENG")
    sw = make_department("SW", eng)
    add_employee(eng)

    assert department_validator.validate_delete(db_session_fixture, eng.id).kind == ViolationKind.HAS_CHILDREN

    add_employee(sw, name="Bob")
    add_employee(sw, name="Carol", is_active=False)
    violation = department_validator.validate_delete(db_session_fixture, sw.id)
    assert violation.kind == ViolationKind.HAS_EMPLOYEES
    assert violation.data["employee_count"] == 1

    exc = violation.to_exception()
    assert isinstance(exc, HasEmployeesError)
    assert exc.status_code == 400
    assert exc.data["kind"] == "has_employees"
