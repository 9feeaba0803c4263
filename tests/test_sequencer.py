from types import SimpleNamespace

from app.domain.routing.sequencer import optimize_stop_order, postal_code_sort_key


def make_job(job_id, zip_code, address):
    return SimpleNamespace(
        id=job_id, location=SimpleNamespace(zip_code=zip_code, address_line1=address)
    )


def ids(jobs):
    return [j.id for j in jobs]


def test_groups_by_zip_then_address():
    jobs = [
        make_job("c", "91730", "200 Elm"),
        make_job("a", "91710", "5 Oak"),
        make_job("b", "91730", "100 Elm"),
    ]

    assert ids(optimize_stop_order(jobs)) == ["a", "b", "c"]


def test_input_is_not_mutated_and_output_is_repeatable():
    jobs = [
        make_job("c", "91730", "200 Elm"),
        make_job("a", "91710", "5 Oak"),
        make_job("b", "91730", "100 Elm"),
    ]
    before = list(jobs)

    first = optimize_stop_order(jobs)
    second = optimize_stop_order(jobs)

    assert jobs == before
    assert first is not jobs
    assert ids(first) == ids(second)


def test_zip_groups_sort_numerically():
    jobs = [make_job("high", "92000", "1 A St"), make_job("low", "09000", "1 A St")]
    assert ids(optimize_stop_order(jobs)) == ["low", "high"]


def test_address_comparison_ignores_case():
    jobs = [
        make_job("banana", "91710", "Banana St"),
        make_job("apple", "91710", "apple St"),
    ]
    assert ids(optimize_stop_order(jobs)) == ["apple", "banana"]


def test_malformed_codes_after_valid_and_missing_last():
    jobs = [
        make_job("missing", None, "1 A St"),
        make_job("malformed", "ABCDE", "1 A St"),
        make_job("valid-high", "99999", "1 A St"),
        make_job("no-location", None, None),
        make_job("valid-low", "10001", "1 A St"),
    ]
    jobs[3].location = None

    # Within the missing group, a blank address sorts first
    assert ids(optimize_stop_order(jobs)) == [
        "valid-low",
        "valid-high",
        "malformed",
        "no-location",
        "missing",
    ]


def test_blank_zip_counts_as_missing():
    jobs = [make_job("blank", "  ", "1 A St"), make_job("valid", "91710", "1 A St")]
    assert ids(optimize_stop_order(jobs)) == ["valid", "blank"]


def test_ties_keep_input_order():
    jobs = [
        make_job("first", "91710", "10 Main St"),
        make_job("second", "91710", "10 Main St"),
    ]
    assert ids(optimize_stop_order(jobs)) == ["first", "second"]


def test_postal_code_sort_key_classes():
    assert postal_code_sort_key("91710")[0] < postal_code_sort_key("9171X")[0]
    assert postal_code_sort_key("9171X")[0] < postal_code_sort_key(None)[0]
    assert postal_code_sort_key("91710-1234")[:2] == postal_code_sort_key("91710")[:2]


def test_empty_input():
    assert optimize_stop_order([]) == []
