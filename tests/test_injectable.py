import unittest

import pytest

from scopebind import (
    Container,
    Key,
    Lazy,
    Optional,
    Scope,
    Singleton,
    bind_with,
    create_root,
    injectable,
)


ConfigKey = Key("Config")
NameKey = Key("Name")


class Clock:
    def __init__(self):
        self.ticks = 0


@injectable(ConfigKey, scope=Singleton)
class Database:
    def __init__(self, config):
        self.config = config


@injectable(Database, Clock)
class Repository:
    def __init__(self, db, clock):
        self.db = db
        self.clock = clock


class TestInjectableClasses(unittest.TestCase):
    root: Container

    def setUp(self):
        self.root = create_root().provide_instance(ConfigKey, {"dsn": "sqlite://"})

    def test_class_with_no_argument_constructor_is_requestable(self):
        clock = self.root.request(Clock)

        assert isinstance(clock, Clock)
        assert self.root.request(Clock) is not clock

    def test_injectable_class_resolves_declared_dependencies(self):
        repo = self.root.request(Repository)

        assert repo.db.config == {"dsn": "sqlite://"}
        assert isinstance(repo.clock, Clock)

    def test_declared_scope_caches_in_owner(self):
        child = self.root.create_child()

        assert child.request(Database) is self.root.request(Database)
        assert self.root.request(Repository).db is self.root.request(Database)

    def test_classes_in_structured_request(self):
        out = self.root.request({"db": Database, "clocks": [Clock, Clock]})

        assert out["db"] is self.root.request(Database)
        assert out["clocks"][0] is not out["clocks"][1]

    def test_explicit_binding_overrides_class_default(self):
        fake = Clock()
        child = self.root.create_child().provide_instance(Clock, fake)

        assert child.request(Repository).clock is fake
        assert self.root.request(Clock) is not fake
        assert child.is_bound(Clock)
        assert not self.root.is_bound(Clock)

    def test_wrappers_accept_classes(self):
        get_db = self.root.request(Lazy(Database))

        assert get_db() is self.root.request(Database)
        assert isinstance(self.root.request(Optional(Clock)), Clock)

    def test_missing_dependency_of_class_is_reported(self):
        assert create_root().request(Optional(Repository)) is None


def test_scope_attribute_requires_an_owner():
    session = Scope("Session")

    class Cart:
        __inject_scope__ = session

    root = create_root()
    owner = root.create_child(session)

    assert root.request(Optional(Cart)) is None
    assert owner.request(Cart) is owner.create_child().request(Cart)


def test_binding_attribute_may_be_a_callable():
    class Greeter:
        __inject_binding__ = staticmethod(lambda: bind_with(NameKey, Greeter))

        def __init__(self, name):
            self.name = name

    greeter = create_root().provide_instance(NameKey, "Ada").request(Greeter)

    assert greeter.name == "Ada"


def test_binding_is_not_inherited_by_subclasses():
    class InMemoryDatabase(Database):
        def __init__(self):
            super().__init__({"dsn": "memory://"})

    db = create_root().request(InMemoryDatabase)

    assert type(db) is InMemoryDatabase
    assert db is not create_root().request(InMemoryDatabase)


def test_invalid_binding_attribute_raises_type_error():
    class Broken:
        __inject_binding__ = 42

    with pytest.raises(TypeError, match="__inject_binding__"):
        create_root().request(Broken)
