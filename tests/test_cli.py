"""
Tests for cli.py — analysis commands against a small on-disk store.
"""

import json

import pytest

from commgraph.cli import main
from commgraph.graph_store import GraphStore


@pytest.fixture
def db(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("COMMGRAPH_DATABASE_FILE", raising=False)
    path = str(tmp_path / "graph.db")
    with GraphStore(path) as store:
        apple, mac, linux, cats = store.bulk_upsert_nodes(["apple", "mac", "linux", "cats"])
        store.add_edge(apple, mac)
        store.add_edge(linux, apple)
        store.update_metadata("apple", False, 100)
    return path


class TestCli:

    def test_stats(self, db, capsys):
        main(["--db", db, "stats"])
        stats = json.loads(capsys.readouterr().out)
        assert stats["total_nodes"] == 4
        assert stats["total_edges"] == 2

    def test_export_to_file(self, db, tmp_path):
        out = tmp_path / "graph-data.json"
        main(["--db", db, "export", "-o", str(out)])
        data = json.loads(out.read_text())
        assert [n["id"] for n in data] == [1, 2, 3, 4]
        assert data[0]["linksTo"] == [2]

    def test_communities_json(self, db, capsys):
        main(["--db", db, "communities", "--json"])
        listing = json.loads(capsys.readouterr().out)
        assert listing[0] == {"hub": "apple", "members": ["apple", "linux", "mac"], "size": 3}
        assert listing[1]["hub"] == "cats"

    def test_communities_from_snapshot(self, db, tmp_path, capsys):
        out = tmp_path / "snap.json"
        main(["--db", db, "export", "-o", str(out)])
        capsys.readouterr()
        main(["communities", "--snapshot", str(out), "--min-size", "2"])
        assert capsys.readouterr().out.startswith("- Group 1: apple (3 members)")

    def test_anonymize_by_size(self, db, tmp_path):
        out = tmp_path / "shared.json"
        main(["--db", db, "anonymize", "--min-size", "1", "--seed", "1", "-o", str(out)])
        data = json.loads(out.read_text())
        assert sorted(n["id"] for n in data) == [0, 1, 2]
        assert {n["name"] for n in data} == {"apple", "mac", "linux"}

    def test_anonymize_missing_hub_writes_nothing(self, db, tmp_path, capsys):
        out = tmp_path / "shared.json"
        with pytest.raises(SystemExit) as exc_info:
            main(["--db", db, "anonymize", "--hub", "nothere", "-o", str(out)])
        assert exc_info.value.code == 1
        assert not out.exists()
        assert "nothere" in capsys.readouterr().err

    def test_no_command(self):
        with pytest.raises(SystemExit):
            main([])

    def test_communities_min_size_is_strict(self, db, capsys):
        main(["--db", db, "communities", "--json", "--min-size", "1"])
        listing = json.loads(capsys.readouterr().out)
        assert [c["hub"] for c in listing] == ["apple"]
        main(["--db", db, "communities", "--json", "--min-size", "3"])
        assert json.loads(capsys.readouterr().out) == []

    def test_duplicate_ids_in_snapshot(self, db, tmp_path, capsys):
        snap = tmp_path / "dup.json"
        snap.write_text(json.dumps([
            {"id": 1, "name": "a", "linksTo": [2]},
            {"id": 1, "name": "b", "linksTo": []},
            {"id": 2, "name": "c", "linksTo": []},
        ]))
        out = tmp_path / "shared.json"
        for argv in (["communities", "--snapshot", str(snap)],
                     ["anonymize", "--snapshot", str(snap), "--min-size", "0", "-o", str(out)]):
            with pytest.raises(SystemExit) as exc_info:
                main(argv)
            assert exc_info.value.code == 2
        assert "Duplicate node id 1" in capsys.readouterr().err
        assert not out.exists()

    def test_missing_snapshot_file(self, db, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["communities", "--snapshot", str(tmp_path / "nope.json")])
        assert exc_info.value.code == 2
        assert "nope.json" in capsys.readouterr().err
