import sys
from collections import OrderedDict

import pytest

from toscaconv import util
from toscaconv.util import (
    ToscaConvError,
    get_base_dir,
    lookup_class,
    register_class,
    register_short_names,
)


class Widget:
    pass


@pytest.fixture(autouse=True)
def registry(monkeypatch):
    monkeypatch.setattr(util, "_ClassRegistry", {})
    monkeypatch.setattr(util, "_shortNameRegistry", {})


def test_lookup_class():
    assert lookup_class("collections.OrderedDict", ["collections"]) is OrderedDict
    assert lookup_class("collections.no_such_thing", ["collections"]) is None
    # not a class
    assert lookup_class("os.path.join", ["os"]) is None
    assert lookup_class("no.such.module.Klass", ["no"]) is None
    assert lookup_class("OrderedDict", ["collections"]) is None


def test_lookup_class_only_imports_allowed_packages():
    assert lookup_class("collections.OrderedDict") is None
    assert lookup_class("collections.OrderedDict", ["collection"]) is None
    assert lookup_class("collections.OrderedDict", ["collections"]) is OrderedDict
    # cached once resolved
    assert lookup_class("collections.OrderedDict") is OrderedDict


def test_lookup_class_does_not_import_unlisted_modules(capsys, monkeypatch):
    monkeypatch.delitem(sys.modules, "this", raising=False)
    assert lookup_class("this.X") is None
    assert "this" not in sys.modules
    assert capsys.readouterr().out == ""


@pytest.mark.parametrize(
    "kind",
    [".relative", "..Foo", ".x.Foo", "collections..OrderedDict", "collections.", "a-b.C"],
)
def test_lookup_class_malformed_paths(kind):
    assert lookup_class(kind, ["", ".", "collections", "a-b"]) is None


def test_short_names_and_registry():
    register_short_names({"Ordered": "collections.OrderedDict", "Bad": "..Foo"})
    # short names are imported without an allowed package
    assert lookup_class("Ordered") is OrderedDict
    assert lookup_class("Bad") is None

    register_class("test.Widget", Widget, short_name="Widget")
    assert lookup_class("test.Widget") is Widget
    assert lookup_class("Widget") is Widget
    with pytest.raises(ToscaConvError):
        register_class("test.Widget", OrderedDict, replace=False)


def test_error_save_stack():
    try:
        try:
            raise ValueError("boom")
        except ValueError:
            raise ToscaConvError("conversion failed", saveStack=True)
    except ToscaConvError as err:
        assert str(err) == "conversion failed: boom"
        assert "ValueError: boom" in err.get_stack_trace()
    assert ToscaConvError("plain").get_stack_trace() == ""


def test_get_base_dir(tmp_path):
    assert get_base_dir(str(tmp_path)) == str(tmp_path)
    assert get_base_dir(str(tmp_path / "service-template.yaml")) == str(tmp_path)
