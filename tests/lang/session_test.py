import io
import logging
import os
import re
import signal
import tempfile
import unittest

from lambda_repl.lang.error import ErrorHandler, GenericException
from lambda_repl.lang.session import Session, Settings, interruptible
from lambda_repl.pure.parser import parse, parse_term
from lambda_repl.pure.reducer import CancelToken, Outcome

ANSI = re.compile(r"\x1b\[[0-9;]*m")
OMEGA = "(\\x. x x) (\\x. x x)"


def plain(text):
    return ANSI.sub("", text)


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.out = io.StringIO()
        self.errors = io.StringIO()
        self.handler = ErrorHandler(fatal=False, stream=self.errors)
        self.sess = Session(self.handler, out=self.out)

    def add_all(self, *lines):
        for line_num, line in enumerate(lines, start=1):
            with self.handler:
                self.sess.add(line, line_num)

    def test_preprocess_line(self):
        cases = {
            "id = \\x. x": ("id = \\x. x", False),
            "id = \\x. x   ;; identity": ("id = \\x. x", False),
            ";; only a comment": ("", False),
            "k = (\\x.": ("k = (\\x.", True),
            "(\\x. x) ;; (": ("(\\x. x)", False),
            "x))": ("x))", False),
        }
        for case, expected in cases.items():
            self.assertEqual(expected, Session.preprocess_line(case), case)

    def test_add(self):
        self.add_all("id = \\x. x", "id y", "", "   ")
        self.assertIn("id", self.sess.environment)
        self.assertEqual(["y"], self.sess.results)
        self.assertEqual("y", self.sess.pop())
        self.assertEqual("", self.errors.getvalue())

    def test_flush(self):
        self.add_all("a", "(\\x. x) b")
        self.sess.flush()
        self.assertEqual("a\nb\n", self.out.getvalue())
        self.assertEqual([], self.sess.results)

    def test_bindings_are_lazy(self):
        self.add_all("two = succ one", "one = \\f. \\x. f x", "succ = \\n. \\f. \\x. f (n f x)")
        self.sess.settings.names = False
        self.add_all("two")
        self.assertEqual(["λf. λx. f (f x)"], self.sess.results)

    def test_redefine(self):
        self.add_all("id = \\x. x", "id = \\y. y y", "id z")
        self.assertEqual(["z z"], self.sess.results)
        self.assertEqual(["id"], self.sess.environment.names())

    def test_failed_binding(self):
        self.add_all("id = \\x. x", "id = (\\x. x", "id = \\x. x + 1")
        self.assertEqual(parse_term("\\x. x"), self.sess.environment.resolve("id"))
        errors = plain(self.errors.getvalue())
        self.assertIn("<in>:2: error: 'id = (\\x. x' has mismatched parentheses", errors)
        self.assertIn("<in>:3: error: 'id = \\x. x + 1' contains unrecognized character '+'", errors)

    def test_read_back(self):
        self.add_all("true = \\t. \\f. t", "false = \\t. \\f. f", "zero = \\f. \\x. x", "not = \\b. b false true")
        self.add_all("\\a. \\b. a", "not true", "\\x. x (\\a. \\b. b)", "\\x. x", "false true")
        self.assertEqual(["true", "false", "λx. x false", "λx. x", "λf. f"], self.sess.results)

    def test_read_back_under_same_named_binder(self):
        self.add_all("true = \\t. \\f. t", "false = \\t. \\f. f", "not = \\b. b false true")
        self.add_all("\\false. not false")
        self.assertEqual(["λfalse. false (λt. λf. f) true"], self.sess.results)

    def test_show_protected_reference(self):
        self.add_all("const = \\z. y", "\\y. const y")
        self.sess.settings.names = False
        self.add_all("\\y. const y")
        self.assertEqual(["λy1. y", "λy1. y"], self.sess.results)

    def test_no_names(self):
        self.sess.settings.names = False
        self.add_all("true = \\t. \\f. t", "\\a. \\b. a")
        self.assertEqual(["λa. λb. a"], self.sess.results)

    def test_step_limit_warning(self):
        self.sess.settings.max_steps = 10
        self.add_all(OMEGA)
        self.assertEqual(["(λx. x x) (λx. x x)"], self.sess.results)
        errors = plain(self.errors.getvalue())
        self.assertIn("warning: '(λx. x x) (λx. x x)' stopped after 10 steps", errors)

    def test_unlimited(self):
        self.sess.settings.max_steps = None
        result = self.sess.evaluate(parse_term("(\\x. \\y. x) a b"))
        self.assertEqual((2, Outcome.HALTED), (result.steps, result.outcome))

    def test_trace(self):
        self.sess.settings.trace = True
        self.add_all("(\\x. \\y. x) a b")
        self.sess.flush()
        self.assertEqual("  → (λy. a) b\n  → a\na\n", self.out.getvalue())

    def test_step(self):
        self.add_all("id = \\x. x")
        self.assertEqual(parse("(\\x. x) y"), self.sess.step(parse_term("id y")))
        self.assertEqual(parse("y"), self.sess.step())
        self.assertIsNone(self.sess.step())
        self.assertEqual(parse("y"), self.sess.current)

    def test_step_nothing(self):
        self.assertRaises(GenericException, self.sess.step)

    def test_step_sees_redefinition(self):
        self.add_all("id = \\x. x")
        self.sess.step(parse_term("id y"))
        self.add_all("id = \\x. x x")
        self.assertEqual(parse("y"), self.sess.step())

    def test_logging(self):
        with self.assertLogs("lambda_repl.lang.session", logging.DEBUG) as logs:
            self.add_all("id = \\x. x", "id = \\y. y")
        self.assertEqual(["DEBUG:lambda_repl.lang.session:defining 'id'",
                          "DEBUG:lambda_repl.lang.session:redefining 'id'"], logs.output)


class LoadSaveTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.out = io.StringIO()
        self.errors = io.StringIO()
        self.handler = ErrorHandler(fatal=False, stream=self.errors)
        self.sess = Session(self.handler, out=self.out)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, name, text):
        path = os.path.join(self.tmp.name, name)
        with open(path, "w", encoding="utf-8") as file:
            file.write(text)
        return path

    def test_load(self):
        path = self.write("test.lc", ";; test file\n"
                                     "id = \\x. x   ;; identity\n"
                                     "\n"
                                     "k = (\\x.\n"
                                     "  \\y. x)\n"
                                     "k (id a) b\n")
        self.sess.load(path)
        self.assertEqual("a\n", self.out.getvalue())
        self.assertEqual(["id", "k"], self.sess.environment.names())
        self.assertEqual(parse_term("\\x. \\y. x"), self.sess.environment.resolve("k"))
        self.assertNotIn(path, self.handler.traceback)

    def test_load_error(self):
        path = self.write("bad.lc", "id = \\x. x\n"
                                    "\n"
                                    "x)\n"
                                    "id b\n")
        with self.handler:
            self.sess.load(path)
        self.assertIn(f"{path}:3: error: 'x)' has mismatched parentheses", plain(self.errors.getvalue()))
        self.assertIn("id", self.sess.environment)
        self.assertEqual("", self.out.getvalue())

    def test_load_unclosed(self):
        path = self.write("unclosed.lc", "a\n"
                                         "k = (\\x.\n"
                                         "  \\y. x\n")
        with self.handler:
            self.sess.load(path)
        self.assertIn(f"{path}:2: error:", plain(self.errors.getvalue()))
        self.assertIn("unclosed '('", self.errors.getvalue())
        self.assertEqual("a\n", self.out.getvalue())

    def test_load_missing(self):
        with self.assertRaises(GenericException):
            self.sess.load(os.path.join(self.tmp.name, "missing.lc"))

    def test_save(self):
        self.sess.load(self.write("in.lc", "id = \\x. x\nk = \\x. \\y. x\napp = f (\\x. x) y\n"))
        path = os.path.join(self.tmp.name, "out.lc")
        self.sess.save(path)

        with open(path, encoding="utf-8") as file:
            self.assertEqual(";; 3 bindings saved by lambda-repl\n"
                             "id = λx. x\n"
                             "k = λx. λy. x\n"
                             "app = f (λx. x) y\n", file.read())

        other = Session(ErrorHandler(fatal=False, stream=self.errors), out=self.out)
        other.load(path)
        self.assertEqual(self.sess.environment.list(), other.environment.list())

    def test_save_unwritable(self):
        with self.assertRaises(GenericException):
            self.sess.save(os.path.join(self.tmp.name, "missing", "out.lc"))


class SettingsTestCase(unittest.TestCase):

    def test_defaults(self):
        settings = Settings()
        self.assertEqual((10000, False, True), (settings.max_steps, settings.trace, settings.names))

    def test_session_uses_settings(self):
        sess = Session(ErrorHandler(fatal=False, stream=io.StringIO()), settings=Settings(max_steps=3))
        result = sess.evaluate(parse_term(OMEGA))
        self.assertEqual((3, Outcome.STEP_LIMIT_REACHED), (result.steps, result.outcome))


class InterruptibleTestCase(unittest.TestCase):

    def test_sigint_cancels(self):
        previous = signal.getsignal(signal.SIGINT)
        with interruptible(CancelToken()) as cancel:
            signal.raise_signal(signal.SIGINT)
            self.assertTrue(cancel.cancelled)
        self.assertIs(previous, signal.getsignal(signal.SIGINT))


if __name__ == '__main__':
    unittest.main()
