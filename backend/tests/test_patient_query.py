import pytest

from app.services.patient_query import query_patients
from conftest import make_patient


@pytest.fixture
def twenty_five():
    return [
        make_patient(f"Patient{day}", "Test", created_at=f"2024-01-{day:02d}T00:00:00.000Z")
        for day in range(1, 26)
    ]


def test_second_page_holds_ranks_eleven_to_twenty(twenty_five):
    page = query_patients(twenty_five, page=2, limit=10)
    assert page.total == 25
    assert page.total_pages == 3
    assert page.current_page == 2
    assert [p.first_name for p in page.patients] == [f"Patient{day}" for day in range(15, 5, -1)]


def test_last_page_is_partial(twenty_five):
    page = query_patients(twenty_five, page=3, limit=10)
    assert len(page.patients) == 5


def test_page_past_the_end_is_empty(twenty_five):
    page = query_patients(twenty_five, page=9, limit=10)
    assert page.patients == []
    assert page.total == 25


def test_empty_collection():
    page = query_patients([])
    assert page.patients == []
    assert page.total == 0
    assert page.total_pages == 0


def test_search_matches_any_of_name_or_phone():
    patients = [
        make_patient("Alice", "Smith", "555-0001", created_at="2024-01-01T00:00:00.000Z"),
        make_patient("Bob", "Jones", "777-0002", created_at="2024-01-02T00:00:00.000Z"),
        make_patient("Carol", "Brown", "555-0003", created_at="2024-01-03T00:00:00.000Z"),
    ]
    page = query_patients(patients, search="555")
    assert [p.first_name for p in page.patients] == ["Carol", "Alice"]
    assert page.total == 2


def test_search_is_case_insensitive_substring():
    patients = [make_patient("Alice", "McDonald"), make_patient("Bob", "Jones")]
    assert [p.first_name for p in query_patients(patients, search="mcdon").patients] == ["Alice"]
    assert [p.first_name for p in query_patients(patients, search="BO").patients] == ["Bob"]


def test_search_treats_input_literally():
    patients = [make_patient("A.B", "Test"), make_patient("AxB", "Test")]
    assert [p.first_name for p in query_patients(patients, search="a.b").patients] == ["A.B"]


@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
def test_non_positive_page_or_limit_rejected(page, limit):
    with pytest.raises(ValueError):
        query_patients([], page=page, limit=limit)
