import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import threading
from dataclasses import dataclass
import pytest
from rental_engine.store import Repository
from rental_engine.errors import ConcurrencyConflict, NotFoundError, ValidationError


@dataclass
class Record:
    id: str
    value: int = 0
    version: int = 0


def test_add_and_get_returns_copies():
    repo = Repository("record")
    stored = repo.add(Record("r1", 5))
    assert stored.version == 1
    fetched = repo.get("r1")
    fetched.value = 99
    assert repo.get("r1").value == 5
    with pytest.raises(ValidationError):
        repo.add(Record("r1"))
    with pytest.raises(NotFoundError):
        repo.get("missing")


def test_add_and_commit_leave_caller_object_alone():
    repo = Repository("record")
    rec = Record("r1", 5)
    repo.add(rec)
    assert rec.version == 0
    draft = repo.get("r1")
    draft.value = 6
    assert repo.commit(draft, draft.version).version == 2
    assert draft.version == 1
    draft.value = 7
    with pytest.raises(ConcurrencyConflict):
        repo.commit(draft, draft.version)


def test_commit_checks_version():
    repo = Repository("record")
    repo.add(Record("r1"))
    first = repo.get("r1")
    second = repo.get("r1")
    first.value = 1
    assert repo.commit(first, first.version).version == 2
    second.value = 2
    with pytest.raises(ConcurrencyConflict) as exc:
        repo.commit(second, second.version)
    assert (exc.value.expected_version, exc.value.actual_version) == (1, 2)
    assert repo.get("r1").value == 1


def test_concurrent_writers_only_one_wins():
    repo = Repository("record")
    repo.add(Record("r1"))
    barrier = threading.Barrier(8)
    outcomes = []

    def writer(n):
        rec = repo.get("r1")
        barrier.wait()
        rec.value = n
        try:
            repo.commit(rec, rec.version)
            outcomes.append("ok")
        except ConcurrencyConflict:
            outcomes.append("conflict")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 7
    assert repo.get("r1").version == 2


def test_archive_keeps_record_remove_drops_it():
    repo = Repository("record")
    repo.add(Record("a"))
    repo.add(Record("b"))
    rec = repo.get("a")
    repo.archive(rec, rec.version)
    assert repo.is_archived("a")
    assert "a" in repo
    assert [r.id for r in repo.values(include_archived=False)] == ["b"]
    assert {r.id for r in repo.values()} == {"a", "b"}

    with pytest.raises(ConcurrencyConflict):
        repo.remove("b", expected_version=7)
    repo.remove("b")
    assert "b" not in repo
    assert len(repo) == 1
    with pytest.raises(NotFoundError):
        repo.remove("b")


def test_values_filter():
    repo = Repository("record")
    for i in range(5):
        repo.add(Record(f"r{i}", i))
    assert sorted(r.value for r in repo.values(where=lambda r: r.value % 2 == 0)) == [0, 2, 4]
