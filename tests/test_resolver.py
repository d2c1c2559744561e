from sync.resolver import records_differ, resolve


def test_newer_remote_wins_wholesale():
    local = {"id": "a", "note": "mine", "color": "red", "updated_at": 100}
    remote = {"id": "a", "note": "theirs", "color": None, "updated_at": 200}
    assert resolve(local, remote) == remote


def test_newer_local_is_kept():
    local = {"note": "mine", "updated_at": 300}
    remote = {"note": "theirs", "updated_at": 200}
    assert resolve(local, remote) == local


def test_tie_prefers_remote():
    local = {"note": "mine", "updated_at": 200}
    remote = {"note": "theirs", "updated_at": 200}
    assert resolve(local, remote)["note"] == "theirs"


def test_preserved_fields_survive_when_remote_lacks_them():
    local = {"id": "local-id", "collection_id": "c1", "note": "a", "updated_at": 1}
    remote = {"note": "b", "collection_id": "", "updated_at": 2}
    merged = resolve(local, remote, preserve=("id", "collection_id"))
    assert merged == {"id": "local-id", "collection_id": "c1", "note": "b", "updated_at": 2}


def test_union_applies_only_when_local_is_strict_superset():
    remote = {"verses_read": [1, 2], "updated_at": 10}
    merged = resolve({"verses_read": [1, 2, 3], "updated_at": 5}, remote, union_fields=("verses_read",))
    assert merged["verses_read"] == [1, 2, 3]
    merged = resolve({"verses_read": [1, 4], "updated_at": 5}, remote, union_fields=("verses_read",))
    assert merged["verses_read"] == [1, 2]


def test_missing_side_returns_other_copy():
    record = {"note": "x", "updated_at": 1}
    assert resolve(None, record) == record
    assert resolve(record, None) == record
    assert resolve(None, None) is None


def test_records_differ_ignores_metadata():
    first = {"note": "x", "version": 1, "dirty": True}
    second = {"note": "x", "version": 4}
    assert not records_differ(first, second, ignore=("version", "dirty"))
    assert records_differ(first, {"note": "y"}, ignore=("version", "dirty"))
    assert records_differ(first, None)


def test_resolving_again_changes_nothing():
    cases = [
        ({"note": "mine", "updated_at": 100}, {"note": "theirs", "updated_at": 200}, {}),
        ({"note": "mine", "updated_at": 300}, {"note": "theirs", "updated_at": 200}, {}),
        ({"note": "mine", "updated_at": 200}, {"note": "theirs", "updated_at": 200}, {}),
        (
            {"id": "local-id", "collection_id": "c1", "updated_at": 1},
            {"collection_id": None, "updated_at": 2},
            {"preserve": ("id", "collection_id")},
        ),
        (
            {"verses_read": [1, 2, 3], "updated_at": 5},
            {"verses_read": [1, 2], "updated_at": 10},
            {"union_fields": ("verses_read",)},
        ),
    ]
    for local, remote, options in cases:
        once = resolve(local, remote, **options)
        assert resolve(once, remote, **options) == once
