"""Named bindings available to the reducer."""


class Environment:
    """Mapping of binding name to λ-term. Redefining a name replaces its term but keeps its original position, so
    listings are stable in definition order.
    """

    def __init__(self, bindings=None):
        self._bindings = {}
        for name, term in bindings or ():
            self.define(name, term)

    def define(self, name, term):
        """Binds name to term, overwriting any previous definition."""
        self._bindings[name] = term

    def resolve(self, name):
        """Returns the term bound to name, or None if name is unbound."""
        return self._bindings.get(name)

    def list(self):
        """Returns (name, term) pairs in definition order."""
        return list(self._bindings.items())

    def names(self):
        return list(self._bindings)

    def clear(self):
        self._bindings.clear()

    def __contains__(self, name):
        return name in self._bindings

    def __len__(self):
        return len(self._bindings)

    def __repr__(self):
        return f"Environment({', '.join(self._bindings)})"
