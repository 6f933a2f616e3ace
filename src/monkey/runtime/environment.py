"""
Environments: chained lexical scopes.

An Environment maps names to Objects and points at its enclosing
Environment. Lookup walks outward; declaration and assignment only ever
touch the local scope.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from .values import (
    Object, Error,
    error_already_declared, error_not_defined,
)


@dataclass(eq=False)
class Environment:
    """
    A single scope containing variable bindings.

    Scopes form a chain via the `outer` field for lexical scoping. The outer
    scope is shared, not owned: closures and call frames created from the
    same scope all see the same bindings.
    """
    store: Dict[str, Object] = field(default_factory=dict)
    outer: Optional["Environment"] = field(default=None, repr=False)
    name: str = "global"  # For debugging

    def get(self, name: str) -> Optional[Object]:
        """Look up a name in this scope or enclosing scopes.

        Returns None when no scope in the chain binds the name.
        """
        if name in self.store:
            return self.store[name]
        if self.outer is not None:
            return self.outer.get(name)
        return None

    def contains(self, name: str) -> bool:
        """Check if a name is bound in this scope or enclosing scopes."""
        return self.get(name) is not None

    def set(self, name: str, value: Object) -> Union[Object, Error]:
        """Declare a new binding in this scope.

        Redeclaring a name already bound in this exact scope is an error;
        shadowing a binding from an enclosing scope is not.
        """
        if name in self.store:
            return error_already_declared(name)
        self.store[name] = value
        return value

    def update(self, name: str, value: Object) -> Union[Object, Error]:
        """Rebind an existing name in this scope.

        Only the local scope is searched; assignment never creates a binding
        and never reaches into an enclosing scope.
        """
        if name not in self.store:
            return error_not_defined(name)
        self.store[name] = value
        return value

    def upsert(self, name: str, value: Object) -> Object:
        """Bind a name in this scope whether or not it already exists."""
        self.store[name] = value
        return value

    def chain(self) -> str:
        """Names of this scope and its ancestors, innermost first."""
        names = []
        env = self
        while env is not None:
            names.append(env.name)
            env = env.outer
        return " -> ".join(names)

    def __repr__(self) -> str:
        return f"Environment({self.chain()}, names={sorted(self.store)})"


def new_environment() -> Environment:
    """Create a root environment."""
    return Environment(name="global")


def new_enclosed_environment(outer: Environment, name: str = "block") -> Environment:
    """Create an empty scope whose enclosing scope is `outer`."""
    return Environment(outer=outer, name=name)
