"""Pure lambda calculus terms.

Formally, a λ-term is one of

```
<λ-term> ::= <name>                  ; "variable" (free or bound by an enclosing abstraction)
           | "λ" <name> "." <λ-term> ; "abstraction"
           | <λ-term> <λ-term>       ; "application", associating to the left: a b c = ((a b) c)
```

plus `Reference`, which is not part of the calculus proper: it names an environment binding and is never captured
by an abstraction. The parser never produces References; they appear when a binding is spliced under binders that
would otherwise capture its free names, and when a result is read back with binding names.

Terms are immutable. Every operation here (and in the reducer) builds new terms instead of editing old ones, so a term
can be shared freely between the environment, a reduction in progress and a trace.
"""

from dataclasses import dataclass


LAMBDA = "λ"


class LambdaTerm:
    """Superclass of all λ-terms. Only used for isinstance checks and shared display methods."""

    def display(self, indents=0):
        """Recursively displays the syntax tree with readable format.

        Format:
        Application(
            Abstraction(param='x',
                Variable('x')
            ),
            Variable('y')
        )
        """
        pad = "    " * indents
        if isinstance(self, Abstraction):
            return f"{pad}Abstraction(param='{self.param}',\n{self.body.display(indents + 1)}\n{pad})"
        if isinstance(self, Application):
            nodes = self.function.display(indents + 1) + ",\n" + self.argument.display(indents + 1)
            return f"{pad}Application(\n{nodes}\n{pad})"
        return f"{pad}{type(self).__name__}('{self.name}')"

    def __str__(self):
        return render(self)


@dataclass(frozen=True)
class Variable(LambdaTerm):
    """Variable in lambda calculus: bound by an enclosing Abstraction, or free (and possibly naming a binding)."""
    name: str


@dataclass(frozen=True)
class Abstraction(LambdaTerm):
    """Abstraction: binds param in body."""
    param: str
    body: LambdaTerm


@dataclass(frozen=True)
class Application(LambdaTerm):
    """Application of function to argument."""
    function: LambdaTerm
    argument: LambdaTerm


@dataclass(frozen=True)
class Reference(LambdaTerm):
    """Named term awaiting resolution against an Environment."""
    name: str


def apply(function, *arguments):
    """Left-associative application: apply(f, a, b) == (f a) b."""
    term = function
    for argument in arguments:
        term = Application(term, argument)
    return term


def free_variables(term):
    """Returns the set of names occurring free in term. References are not variables and never count as free."""
    if isinstance(term, Variable):
        return {term.name}
    elif isinstance(term, Abstraction):
        return free_variables(term.body) - {term.param}
    elif isinstance(term, Application):
        return free_variables(term.function) | free_variables(term.argument)
    elif isinstance(term, Reference):
        return set()
    raise TypeError(f"unknown term type: {type(term).__name__}")


def is_closed(term):
    """Whether or not term has no free variables."""
    return not free_variables(term)


def names(term):
    """Returns every name in term: variables, binders and references."""
    if isinstance(term, (Variable, Reference)):
        return {term.name}
    elif isinstance(term, Abstraction):
        return names(term.body) | {term.param}
    elif isinstance(term, Application):
        return names(term.function) | names(term.argument)
    raise TypeError(f"unknown term type: {type(term).__name__}")


def reference_names(term):
    """Returns the names of the References in term."""
    if isinstance(term, Reference):
        return {term.name}
    elif isinstance(term, Variable):
        return set()
    elif isinstance(term, Abstraction):
        return reference_names(term.body)
    elif isinstance(term, Application):
        return reference_names(term.function) | reference_names(term.argument)
    raise TypeError(f"unknown term type: {type(term).__name__}")


def fresh_name(name, avoid):
    """Returns the first of name1, name2, ... (trailing digits of name are dropped first, so x1 gives x2, x3, ...)
    that is not in avoid. This is the only place new names are made up.
    """
    stem = name.rstrip("0123456789") or name
    index = 1
    while f"{stem}{index}" in avoid:
        index += 1
    return f"{stem}{index}"


def rename(term, old, new):
    """Returns term with free Variables named old renamed to new. new must not occur anywhere in term."""
    if isinstance(term, Variable):
        return Variable(new) if term.name == old else term
    elif isinstance(term, Reference):
        return term
    elif isinstance(term, Abstraction):
        return term if term.param == old else Abstraction(term.param, rename(term.body, old, new))
    elif isinstance(term, Application):
        return Application(rename(term.function, old, new), rename(term.argument, old, new))
    raise TypeError(f"unknown term type: {type(term).__name__}")


def alpha_equals(term, other, mapping=None, other_mapping=None):
    """Whether or not two terms are alpha-equivalent. mapping maps bound names of term to the stack of names of other
    that are bound at the same depth; other_mapping is the same from the perspective of other. Free variables must
    match by name.
    """
    if mapping is None:
        mapping = {}
    if other_mapping is None:
        other_mapping = {}

    if type(term) is not type(other):
        return False

    if isinstance(term, Variable):
        bound = mapping.get(term.name)
        other_bound = other_mapping.get(other.name)
        if bound or other_bound:
            return bool(bound) and bool(other_bound) and bound[-1] == other.name and other_bound[-1] == term.name
        return term.name == other.name

    elif isinstance(term, Reference):
        return term.name == other.name

    elif isinstance(term, Application):
        return (alpha_equals(term.function, other.function, mapping, other_mapping)
                and alpha_equals(term.argument, other.argument, mapping, other_mapping))

    elif isinstance(term, Abstraction):
        mapping.setdefault(term.param, []).append(other.param)
        other_mapping.setdefault(other.param, []).append(term.param)
        try:
            return alpha_equals(term.body, other.body, mapping, other_mapping)
        finally:
            mapping[term.param].pop()
            other_mapping[other.param].pop()

    raise TypeError(f"unknown term type: {type(term).__name__}")


# positions for render:
# - 0: whole expression (top level, inside parentheses, or an abstraction body)
# - 1: function position of an application
# - 2: argument position of an application
WHOLE, FUNCTION, ARGUMENT = range(3)


def render(term, position=WHOLE):
    """Renders term back to source text with as few parentheses as the grammar allows. If term has no References,
    parsing the result gives back a structurally equal term. A binder that would hide a Reference of the same name is
    renamed: λy. y is printed for the identity, λy1. y for a function returning the binding y.
    """
    if isinstance(term, (Variable, Reference)):
        return term.name

    elif isinstance(term, Abstraction):
        param, body = term.param, term.body
        if param in reference_names(body):
            param = fresh_name(param, names(body) | {param})
            body = rename(body, term.param, param)
        text = f"{LAMBDA}{param}. {render(body)}"
        if position != WHOLE:  # abstraction bodies are greedy
            text = f"({text})"
        return text

    elif isinstance(term, Application):
        text = f"{render(term.function, FUNCTION)} {render(term.argument, ARGUMENT)}"
        if position == ARGUMENT:
            text = f"({text})"
        return text

    raise TypeError(f"unknown term type: {type(term).__name__}")
