from halrest.core.problem import DEFAULT_DESCRIBED_BY, ApiProblem


class TeapotError(Exception):
    status_code = 418


def _raise_chain():
    try:
        raise ValueError("inner failure")
    except ValueError as exc:
        raise RuntimeError("outer failure") from exc


def test_to_dict_keys_and_defaults():
    problem = ApiProblem(404, "Resource not found.")
    assert problem.to_dict() == {
        "httpStatus": 404,
        "describedBy": DEFAULT_DESCRIBED_BY,
        "title": "Not Found",
        "detail": "Resource not found.",
    }
    assert problem.status_code == 404


def test_out_of_range_status_kept_in_body_but_clamped_for_transport():
    problem = ApiProblem(10081, "Unusual")
    assert problem.to_dict()["httpStatus"] == 10081
    assert problem.status_code == 500
    assert ApiProblem(42, "low").status_code == 500


def test_explicit_title_wins():
    problem = ApiProblem(409, "Invalid page provided", title="Conflict!")
    assert problem.get_title() == "Conflict!"


def test_title_from_exception_when_described_by_is_custom():
    problem = ApiProblem(
        500, KeyError("missing"), described_by="http://example.com/problems/key"
    )
    assert problem.get_title() == "KeyError"


def test_unknown_title_fallback():
    problem = ApiProblem(499, "client went away")
    assert problem.get_title() == "Unknown"
    custom = ApiProblem(400, "bad", described_by="http://example.com/problems/bad")
    assert custom.get_title() == "Unknown"


def test_exception_detail_without_stack_trace():
    problem = ApiProblem(500, ValueError("boom"))
    assert problem.get_detail() == "boom"


def test_exception_detail_with_stack_trace_and_causes():
    try:
        _raise_chain()
    except RuntimeError as exc:
        problem = ApiProblem.from_exception(exc)

    problem.set_detail_includes_stack_trace(True)
    detail = problem.get_detail()

    assert detail.startswith("outer failure\n")
    assert "_raise_chain" in detail
    assert "ValueError: inner failure" in detail


def test_from_exception_status():
    assert ApiProblem.from_exception(TeapotError("short and stout")).http_status == 418
    assert ApiProblem.from_exception(ValueError("x")).http_status == 500
    assert ApiProblem.from_exception(ValueError("x"), status=422).http_status == 422
