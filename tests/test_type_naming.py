import collections
from types import ModuleType

import pytest

from shard.evaluation import runtime
from shard.introspection.reflection import Reflector
from shard.types.naming import TypeNamer


@pytest.fixture
def namer():
    return TypeNamer(["collections"])


@pytest.mark.parametrize(
    "t,name",
    [
        (int, "int"),
        (float, "double"),
        (str, "string"),
        (bool, "bool"),
        (object, "object"),
        (list, "list"),
        (collections.OrderedDict, "collections.OrderedDict"),
    ],
)
def test_type_name(namer, t, name):
    assert namer.type_name(t) == name


def test_simplified_name_drops_registered_namespace(namer):
    assert namer.type_name(collections.OrderedDict, simplified=True) == "OrderedDict"
    assert namer.simplify("collections.abc.Mapping") == "abc.Mapping"
    assert namer.simplify("os.PathLike") == "os.PathLike"


def test_private_subclass_is_named_by_public_base(namer):
    class Scores(list):
        pass

    assert namer.public_runtime_type_name(Scores([1])) == "list"


def test_object_subclass_falls_back_to_collection_interface(namer):
    class Bag:
        def __iter__(self):
            return iter(())

    class Thing:
        pass

    assert namer.public_runtime_type_name(Bag()) == "collections.abc.Iterable"
    assert namer.public_runtime_type_name(Thing()) == "object"


def test_implementation_types(namer):
    assert namer.public_runtime_type_name({}.keys()) == "collections.abc.KeysView"
    assert namer.public_runtime_type_name(x for x in ()) == "collections.abc.Generator"


def test_values(namer):
    assert namer.public_runtime_type_name(None) is None
    assert namer.public_runtime_type_name(4) == "int"
    assert namer.public_runtime_type_name(True) == "bool"
    assert namer.public_runtime_type_name("s") == "string"


def test_session_unit_types_have_bare_names():
    reflector = Reflector()
    module = ModuleType("shard_unit_Unit3")
    cls = type("Unit3", (), {"__module__": module.__name__})
    module.Unit3 = cls
    reflector.register_unit(module)
    namer = TypeNamer([], reflector)
    assert namer.public_runtime_type_name(cls()) == "Unit3"


def test_arrays_are_named_by_element_type(namer):
    assert namer.public_runtime_type_name(runtime.array(int, [1])) == "int[]"
    assert namer.public_runtime_type_name(runtime.new_array(None, 1, collections.OrderedDict)) == \
        "collections.OrderedDict[]"
    assert namer.public_runtime_type_name(runtime.new_array(None, 1, collections.OrderedDict), True) == \
        "OrderedDict[]"
    assert namer.public_runtime_type_name(runtime.array(None, [1, "a"])) == "list"
