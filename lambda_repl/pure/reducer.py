"""Normal-order reduction of λ-terms.

Two kinds of step are performed, always at the leftmost-outermost position where one applies:

- β: (λx.M) N  →  M[x := N], renaming binders of M that would capture free variables of N
- δ: a free name (a Variable not bound by an enclosing abstraction, or a Reference) that is bound in the environment
     is replaced by its definition

Normal order finds a normal form whenever one exists, but the calculus is Turing-complete, so reduction may go on
forever. `run` and `trace` therefore take a step limit and a CancelToken, both checked between steps (never in the
middle of a substitution), and report how reduction stopped instead of raising.

Sources: https://plato.stanford.edu/entries/lambda-calculus/#Com,
         http://pages.cs.wisc.edu/~horwitz/CS704-NOTES/1.LAMBDA-CALCULUS.html#NOR
"""

import enum
import threading
from collections import namedtuple

from lambda_repl.pure.environment import Environment
from lambda_repl.pure.term import Abstraction, Application, Reference, Variable, free_variables, fresh_name


class Outcome(enum.Enum):
    HALTED = "halted"                          # normal form reached
    STEP_LIMIT_REACHED = "step limit reached"  # not a failure: the partially reduced term is still returned
    CANCELLED = "cancelled"


class Result(namedtuple("Result", ["term", "steps", "outcome"])):
    """Outcome of running a term: the last term reached, the number of steps taken and why reduction stopped."""
    __slots__ = ()

    @property
    def halted(self):
        return self.outcome is Outcome.HALTED


class CancelToken:
    """Cooperative cancellation flag. Safe to trip from a signal handler or another thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    def reset(self):
        self._event.clear()

    @property
    def cancelled(self):
        return self._event.is_set()


def substitute(term, var, new_term, new_free=None):
    """Returns term with every free occurrence of Variable var replaced by new_term. Binders in term that would capture
    a free variable of new_term are renamed first (alpha conversion). new_free caches free_variables(new_term).
    """
    if new_free is None:
        new_free = free_variables(new_term)

    if isinstance(term, Variable):
        return new_term if term.name == var else term

    elif isinstance(term, Reference):
        return term

    elif isinstance(term, Application):
        return Application(substitute(term.function, var, new_term, new_free),
                           substitute(term.argument, var, new_term, new_free))

    elif isinstance(term, Abstraction):
        if term.param == var:
            return term  # var is shadowed

        body_free = free_variables(term.body)
        if var not in body_free:
            return term  # nothing to substitute, so nothing to capture either

        param, body = term.param, term.body
        if param in new_free:
            param = fresh_name(param, body_free | new_free | {var})
            body = substitute(body, term.param, Variable(param))
        return Abstraction(param, substitute(body, var, new_term, new_free))

    raise TypeError(f"unknown term type: {type(term).__name__}")


def protect(term, names):
    """Returns term with its free Variables named in names turned into References, so that splicing term under
    binders for those names cannot capture them.
    """
    if not names:
        return term

    if isinstance(term, Variable):
        return Reference(term.name) if term.name in names else term

    elif isinstance(term, Reference):
        return term

    elif isinstance(term, Application):
        return Application(protect(term.function, names), protect(term.argument, names))

    elif isinstance(term, Abstraction):
        return Abstraction(term.param, protect(term.body, names - {term.param}))

    raise TypeError(f"unknown term type: {type(term).__name__}")


class Trace:
    """Lazy sequence of the intermediate terms of a reduction, one per step. Once iteration is over, result holds the
    same Result that NormalOrderReducer.run would have returned.
    """

    def __init__(self, reducer, term, env, max_steps, cancel):
        self.reducer = reducer
        self.term = term
        self.env = env
        self.max_steps = max_steps
        self.cancel = cancel
        self.result = None

    def __iter__(self):
        term = self.term
        steps = 0

        while True:
            if self.max_steps is not None and steps >= self.max_steps:
                halted = self.reducer.step(term, self.env) is None  # could have reached normal form on the last step
                outcome = Outcome.HALTED if halted else Outcome.STEP_LIMIT_REACHED
                break

            if self.cancel is not None and self.cancel.cancelled:
                outcome = Outcome.CANCELLED
                break

            reduced = self.reducer.step(term, self.env)
            if reduced is None:
                outcome = Outcome.HALTED
                break

            term = reduced
            steps += 1
            yield term

        self.result = Result(term, steps, outcome)


class NormalOrderReducer:
    """Implements normal-order (leftmost-outermost) reduction. Stateless apart from the default step limit: the
    environment is only read, never modified.
    """
    MAX_STEPS = 10000

    def __init__(self, max_steps=MAX_STEPS):
        self.max_steps = max_steps  # None means unlimited

    def step(self, term, env=None):
        """Performs exactly one β or δ step. Returns None if term is in normal form."""
        return self._step(term, env if env is not None else Environment(), frozenset())

    def _step(self, term, env, bound):
        """bound is the set of names bound by abstractions enclosing term."""
        if isinstance(term, Variable):
            if term.name in bound:
                return None
            return self._expand(term.name, env, bound)

        elif isinstance(term, Reference):
            return self._expand(term.name, env, bound)

        elif isinstance(term, Abstraction):
            body = self._step(term.body, env, bound | {term.param})
            return None if body is None else Abstraction(term.param, body)

        elif isinstance(term, Application):
            function, argument = term.function, term.argument
            if isinstance(function, Abstraction):
                return substitute(function.body, function.param, argument)

            # the head must be reduced (or resolved) first: it might turn into an abstraction
            reduced = self._step(function, env, bound)
            if reduced is not None:
                return Application(reduced, argument)

            reduced = self._step(argument, env, bound)
            if reduced is not None:
                return Application(function, reduced)
            return None

        raise TypeError(f"unknown term type: {type(term).__name__}")

    @staticmethod
    def _expand(name, env, bound):
        """Returns the definition of name in env, protected against capture by bound, or None if name is unbound."""
        definition = env.resolve(name)
        if definition is None:
            return None
        return protect(definition, free_variables(definition) & bound)

    def trace(self, term, env=None, max_steps=-1, cancel=None):
        """Returns a Trace of term's reduction. max_steps=-1 uses this reducer's limit, None means no limit."""
        if max_steps == -1:
            max_steps = self.max_steps
        return Trace(self, term, env if env is not None else Environment(), max_steps, cancel)

    def run(self, term, env=None, max_steps=-1, cancel=None):
        """Steps term until normal form, max_steps steps or cancellation, whichever comes first. Returns a Result.
        Intermediate terms are not kept: use trace for those.
        """
        trace = self.trace(term, env, max_steps, cancel)
        for __ in trace:
            pass
        return trace.result
