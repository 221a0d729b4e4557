from pathlib import Path

import pytest

from toscaconv.catalog import (
    Catalog,
    CatalogEntry,
    looks_like_versioned_id,
    split_versioned_id,
    version_key,
)
from toscaparser.utils.validateutils import TOSCAVersionProperty

from toscaconv.util import CatalogError, SchemaError

EXAMPLES = Path(__file__).parent / "examples"


@pytest.mark.parametrize(
    "versioned_id,expected",
    [
        ("brooklyn.webserver:1.0", True),
        ("brooklyn.webserver:1.0.0-SNAPSHOT", True),
        ("my.Foo", False),
        ("", False),
        (None, False),
        (":1.0", False),
        ("my.Foo:", False),
        ("my.Foo:latest", False),
        ("http://example.com/foo", False),
        ("a:1.0:b", False),
    ],
)
def test_looks_like_versioned_id(versioned_id, expected):
    assert looks_like_versioned_id(versioned_id) is expected


def test_split_versioned_id():
    assert split_versioned_id("brooklyn.webserver:1.0") == ("brooklyn.webserver", "1.0")


def test_version_ordering():
    versions = ["1.10", "1.2", "1.0.0.SNAPSHOT", "1.0", "junk", "2.0-1", "2.0"]
    assert sorted(versions, key=version_key) == [
        "junk",
        "1.0.0.SNAPSHOT",
        "1.0",
        "1.2",
        "1.10",
        "2.0",
        "2.0-1",
    ]


@pytest.mark.parametrize(
    "version", ["1.0", "1.0.0.SNAPSHOT", "2.0-1", "1.0.0-SNAPSHOT", "1.0.SNAP_SHOT", "v1"]
)
def test_version_parsing_follows_tosca(version):
    parsed = TOSCAVersionProperty.VERSION_RE.match(version) is not None
    assert (version_key(version)[0] == 1) == parsed


class TestCatalog:
    def test_find(self):
        catalog = Catalog(
            [
                CatalogEntry("foo", "1.0", "Foo1"),
                CatalogEntry("foo", "1.10", "Foo110"),
                CatalogEntry("foo", "1.9", "Foo19"),
            ]
        )
        assert catalog.find("foo", "1.0").type == "Foo1"
        assert catalog.find("foo").type == "Foo110"
        assert catalog.find("foo", "2.0") is None
        assert catalog.find("bar") is None
        assert len(catalog) == 3

    def test_duplicate(self):
        catalog = Catalog([CatalogEntry("foo", "1.0", "Foo")])
        with pytest.raises(CatalogError):
            catalog.add(CatalogEntry("foo", "1.0", "Bar"))

    def test_load(self):
        catalog = Catalog.load(str(EXAMPLES / "catalog.yaml"))
        assert len(catalog) == 4
        entry = catalog.find("brooklyn.webserver", "1.0")
        assert entry.versioned_id == "brooklyn.webserver:1.0"
        assert entry.config == {"wars.root": "http://example.com/hello.war"}
        assert catalog.find("brooklyn.webserver").version == "2.0"

    def test_invalid(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("catalog:\n  - id: foo\n    version: 1.0\n")
        with pytest.raises(SchemaError, match="'type' is a required property"):
            Catalog.load(str(path))

    def test_unknown_entry_keys(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text(
            "catalog:\n  - id: foo\n    version: '1.0'\n    type: Foo\n    name: My Foo\n"
        )
        with pytest.raises(SchemaError, match="'name' was unexpected"):
            Catalog.load(str(path))

    def test_numeric_version(self, tmp_path):
        path = tmp_path / "catalog.yaml"
        path.write_text("catalog:\n  - id: foo\n    version: 1.5\n    type: Foo\n")
        assert Catalog.load(str(path)).find("foo", "1.5").type == "Foo"
