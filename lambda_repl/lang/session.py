"""Session control for lambda-repl. Turns lines of text (from a file or the command line) into bindings and
evaluations, and owns the state that outlives a single line: the environment, the settings and the term being stepped.

A .lc file is a sequence of statements, one per line:

```
<binding>   ::= <name> "=" <λ-term>   ; defined in file order, resolved lazily when used
<exec_stmt> ::= <λ-term>              ; reduced to normal form, result printed
<comment>   ::= ";;" <char>*
```

A line with more "(" than ")" continues on the next line.
"""

import logging
import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass

from lambda_repl.lang.error import GenericException
from lambda_repl.pure.environment import Environment
from lambda_repl.pure.parser import Binding, parse
from lambda_repl.pure.reducer import CancelToken, NormalOrderReducer, Outcome
from lambda_repl.pure.term import Abstraction, Application, Reference, alpha_equals, is_closed, render

logger = logging.getLogger(__name__)

COMMENT = ";;"


@dataclass
class Settings:
    """Runtime configuration, set from the command line and changed by shell commands."""
    max_steps: int = NormalOrderReducer.MAX_STEPS  # None means unlimited
    trace: bool = False  # print every intermediate term
    names: bool = True   # show results with binding names read back in


@contextmanager
def interruptible(cancel):
    """While active, SIGINT trips cancel instead of raising KeyboardInterrupt. Signal handlers can only be installed
    from the main thread; elsewhere this does nothing.
    """
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.cancel())
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


class Session:
    """Governs a lambda-repl session, with control over the bindings in scope."""
    SH_FILE = "<in>"  # command-line interpreter filename

    def __init__(self, error_handler, path=SH_FILE, settings=None, environment=None, out=None):
        self.error_handler = error_handler
        self.error_handler.register_file(path)

        self.path = path  # used for error messages
        self.settings = settings if settings is not None else Settings()
        self.environment = environment if environment is not None else Environment()
        self.reducer = NormalOrderReducer(self.settings.max_steps)
        self.out = out  # None means sys.stdout

        self.results = []     # rendered results not yet displayed, oldest first
        self.current = None   # term being stepped through with step()

    @staticmethod
    def preprocess_line(line):
        """Preprocesses a line from a file or command-line: removes comments and trailing whitespace. Returns the line
        and whether it needs a continuation (more "(" than ")").
        """
        if COMMENT in line:
            line = line[:line.index(COMMENT)]  # get rid of comments

        line = line.rstrip()
        return line, line.count("(") > line.count(")")

    def _print(self, text):
        print(text, file=self.out)

    def add(self, line, line_num, path=None):
        """Adds a statement to the current session: a binding is defined, a λ-term is evaluated and its result queued
        in self.results. A line that fails to parse leaves the session untouched.
        """
        path = path if path is not None else self.path
        if not line.strip():
            return

        self.error_handler.register_line(path, line, line_num)  # in case error is raised

        statement = parse(line)
        if isinstance(statement, Binding):
            self.define(statement.name, statement.term)
        else:
            self.results.append(self.show(self.evaluate(statement).term))

        self.error_handler.remove_line(path)  # error was not raised

    def define(self, name, term):
        if name in self.environment:
            logger.debug("redefining '%s'", name)
        else:
            logger.debug("defining '%s'", name)
        self.environment.define(name, term)

    def evaluate(self, term):
        """Reduces term with the session's settings, printing intermediate terms if tracing. Warns if reduction was
        stopped before a normal form was reached. Returns the reducer's Result.
        """
        with interruptible(CancelToken()) as cancel:
            trace = self.reducer.trace(term, self.environment, self.settings.max_steps, cancel)
            for intermediate in trace:
                if self.settings.trace:
                    self._print(f"  → {render(intermediate)}")

        result = trace.result
        logger.debug("'%s': %s after %d steps", render(term), result.outcome.value, result.steps)

        if result.outcome is Outcome.STEP_LIMIT_REACHED:
            msg = "'{}' stopped after {} steps: it might not have a normal form (see :limit)"
            self.error_handler.warn(msg, (render(term), result.steps), diagnosis=False)
        elif result.outcome is Outcome.CANCELLED:
            self.error_handler.warn("'{}' interrupted after {} steps", (render(term), result.steps), diagnosis=False)

        return result

    def step(self, term=None):
        """Performs one reduction step of term, or of the term left by the previous call if term is None. Returns the
        reduced term, or None if it already is in normal form.
        """
        if term is not None:
            self.current = term
        if self.current is None:
            raise GenericException("nothing to step: give a λ-term first", diagnosis=False)

        reduced = self.reducer.step(self.current, self.environment)
        if reduced is not None:
            self.current = reduced
        return reduced

    def show(self, term):
        """Renders term, with subterms equal to a binding replaced by the binding's name if settings.names."""
        if self.settings.names:
            term = self.read_back(term)
        return render(term)

    def read_back(self, term):
        """Replaces every maximal subterm of term that is alpha-equivalent to a closed abstraction bound in the
        environment with a Reference to it. Earlier bindings win over later, alpha-equivalent ones. A binding is
        never used below a binder of the same name, where its name would denote the bound variable instead.
        """
        candidates = [(name, definition) for name, definition in self.environment.list()
                      if isinstance(definition, Abstraction) and is_closed(definition)]

        def _read_back(node, bound):
            if isinstance(node, Abstraction):
                for name, definition in candidates:
                    if name not in bound and alpha_equals(node, definition):
                        return Reference(name)
                return Abstraction(node.param, _read_back(node.body, bound | {node.param}))
            if isinstance(node, Application):
                return Application(_read_back(node.function, bound), _read_back(node.argument, bound))
            return node

        return _read_back(term, frozenset()) if candidates else term

    def pop(self):
        """Pops the oldest pending result."""
        return self.results.pop(0)

    def flush(self):
        """Prints all pending results."""
        while self.results:
            self._print(self.pop())

    def load(self, path):
        """Runs the .lc file at path in this session: its bindings are defined and its λ-terms evaluated, with results
        printed as they are produced.
        """
        self.error_handler.register_file(path)

        try:
            with open(path, "r", encoding="utf-8") as file:
                lines = file.readlines()
        except OSError:
            raise GenericException("'{}' could not be opened", path, diagnosis=False)

        statements = []
        pending, pending_num = "", 0
        for line_num, line in enumerate(lines, start=1):
            line, add_to_prev = self.preprocess_line(f"{pending} {line}" if pending else line)
            if add_to_prev:
                pending, pending_num = line, pending_num or line_num
                continue
            statements.append((line, pending_num or line_num))
            pending, pending_num = "", 0

        if pending:
            statements.append((pending, pending_num))  # let the parser report the unclosed parenthesis

        before = len(self.environment)
        for line, line_num in statements:
            self.add(line, line_num, path)
            self.flush()

        logger.info("loaded '%s': %d statements, %d new bindings", path, len(statements),
                    len(self.environment) - before)
        self.error_handler.remove_file(path)

    def save(self, path):
        """Writes every binding to path as a .lc file that load can read back."""
        try:
            with open(path, "w", encoding="utf-8") as file:
                file.write(f"{COMMENT} {len(self.environment)} bindings saved by lambda-repl\n")
                for name, term in self.environment.list():
                    file.write(f"{name} = {render(term)}\n")
        except OSError:
            raise GenericException("'{}' could not be written", path, diagnosis=False)

        logger.info("saved %d bindings to '%s'", len(self.environment), path)
