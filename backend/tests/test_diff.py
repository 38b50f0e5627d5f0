from blockcms.domain.diff import compare_versions, diff_summary, diff_trees

OLD = [
    {"_id": "a", "type": "text", "order": 0, "data": {"content": "A"}},
    {
        "_id": "w",
        "type": "wrapper",
        "order": 1,
        "data": {},
        "children": [{"_id": "c", "type": "text", "order": 0, "data": {"content": "C"}}],
    },
]


def test_identical_trees_have_empty_diff():
    assert diff_summary(OLD, OLD) == {"added": 0, "removed": 0, "modified": 0}
    assert diff_trees(OLD, OLD) == {"added": [], "removed": [], "modified": []}


def test_everything_is_added_against_nothing():
    assert diff_summary(None, OLD) == {"added": 3, "removed": 0, "modified": 0}


def test_added_removed_and_modified():
    new = [
        {"_id": "a", "type": "text", "order": 0, "data": {"content": "A2"}},
        {"_id": "n", "type": "text", "order": 1, "data": {"content": "N"}},
    ]
    changes = diff_trees(OLD, new)

    assert [c["id"] for c in changes["added"]] == ["n"]
    assert sorted(c["id"] for c in changes["removed"]) == ["c", "w"]
    assert changes["modified"][0]["fields"] == ["data"]
    assert changes["modified"][0]["before"]["data"] == {"content": "A"}
    assert diff_summary(OLD, new) == {"added": 1, "removed": 2, "modified": 1}


def test_reparenting_alone_is_not_a_change():
    new = [
        {"_id": "a", "type": "text", "order": 0, "data": {"content": "A"}},
        {"_id": "w", "type": "wrapper", "order": 1, "data": {}, "children": []},
        {"_id": "c", "type": "text", "order": 0, "data": {"content": "C"}},
    ]
    assert diff_summary(OLD, new)["modified"] == 0


def test_removed_entries_carry_no_children():
    changes = diff_trees(OLD, [])
    wrapper = next(c for c in changes["removed"] if c["id"] == "w")
    assert "children" not in wrapper["before"]


def test_compare_versions_flags_scalar_changes():
    older = {"version_number": 1, "elements": OLD, "snapshot": {"title": "T", "slug": "t", "status": "draft"}}
    newer = {
        "version_number": 3,
        "elements": OLD,
        "snapshot": {"title": "T2", "slug": "t", "status": "draft", "metadata": {"a": 1}},
    }
    result = compare_versions(older, newer)

    assert result["from_version"] == 1
    assert result["to_version"] == 3
    assert result["title_changed"] is True
    assert result["slug_changed"] is False
    assert result["metadata_changed"] is True
    assert result["summary"] == {"added": 0, "removed": 0, "modified": 0}
