"""
Tests for the dependency container.
"""
from abc import ABC, abstractmethod
from typing import Optional, Protocol, Tuple

import pytest

from orbit.core.container import Container, verify_constructor
from orbit.core.errors import (
    ConstructorError,
    CyclicDependencyError,
    DependencyError,
    DependencyTypeError,
    MissingDependencyError,
)


class Database:
    def __init__(self) -> None:
        self.url = "memory://"


class Repository(ABC):
    @abstractmethod
    def get(self) -> str:
        ...


class SqlRepository(Repository):
    def __init__(self, db: Database) -> None:
        self.db = db

    def get(self) -> str:
        return self.db.url


class Clock(Protocol):
    def now(self) -> float:
        ...


class FixedClock:
    def now(self) -> float:
        return 1.0


class UserService:
    def __init__(self, repo: Repository, retries: int = 3) -> None:
        self.repo = repo
        self.retries = retries


class Chicken:
    def __init__(self, egg: "Egg") -> None:
        self.egg = egg


class Egg:
    def __init__(self, chicken: Chicken) -> None:
        self.chicken = chicken


def new_repository(db: Database) -> Repository:
    return SqlRepository(db)


def new_clock() -> Clock:
    return FixedClock()


def wrong_type() -> Database:
    return "not a database"  # type: ignore[return-value]


def returns_none() -> Database:
    return None  # type: ignore[return-value]


def no_return(db: Database):
    return db


def returns_int() -> int:
    return 1


def returns_tuple() -> Tuple[Database, Database]:
    return Database(), Database()


def returns_optional() -> Optional[Database]:
    return None


def variadic(*dbs: Database) -> Repository:
    return SqlRepository(dbs[0])


async def async_ctor() -> Database:
    return Database()


class TestVerifyConstructor:
    def test_class_provides_itself(self):
        assert verify_constructor(Database) is Database

    def test_function_provides_return_type(self):
        assert verify_constructor(new_repository) is Repository

    def test_protocol_return_is_accepted(self):
        assert verify_constructor(new_clock) is Clock

    @pytest.mark.parametrize(
        "constructor",
        [no_return, returns_int, returns_tuple, returns_optional, variadic, async_ctor, 42],
    )
    def test_rejects_bad_shapes(self, constructor):
        with pytest.raises(ConstructorError):
            verify_constructor(constructor)


class TestContainer:
    def test_resolves_graph(self):
        c = Container()
        c.provide(Database)
        c.provide(new_repository)
        repo = c.resolve(Repository)
        assert isinstance(repo, SqlRepository)
        assert repo.get() == "memory://"

    def test_instances_are_cached(self):
        c = Container()
        c.provide(Database)
        assert c.resolve(Database) is c.resolve(Database)

    def test_invoke_uses_defaults_and_does_not_register(self):
        c = Container()
        c.provide(Database)
        c.provide(new_repository)
        service = c.invoke(UserService)
        assert service.retries == 3
        assert service.repo is c.resolve(Repository)
        assert not c.has(UserService)
        assert c.invoke(UserService) is not service

    def test_provide_instance(self):
        c = Container()
        db = Database()
        c.provide_instance(Database, db)
        assert c.resolve(Database) is db

    def test_protocol_dependency(self):
        c = Container()
        c.provide(new_clock)
        assert c.resolve(Clock).now() == 1.0

    def test_duplicate_registration(self):
        c = Container()
        c.provide(Database)
        with pytest.raises(DependencyError):
            c.provide(Database)

    def test_missing_dependency(self):
        c = Container()
        with pytest.raises(MissingDependencyError) as exc_info:
            c.invoke(UserService)
        assert exc_info.value.key is Repository

    def test_cycle(self):
        c = Container()
        c.provide(Chicken)
        c.provide(Egg)
        with pytest.raises(CyclicDependencyError) as exc_info:
            c.resolve(Chicken)
        assert exc_info.value.path == [Chicken, Egg, Chicken]

    def test_wrong_instance_type(self):
        c = Container()
        c.provide(wrong_type)
        with pytest.raises(DependencyTypeError):
            c.resolve(Database)

    def test_none_instance(self):
        c = Container()
        c.provide(returns_none)
        with pytest.raises(DependencyTypeError):
            c.resolve(Database)
