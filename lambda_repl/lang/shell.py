"""Handles interactive/command-line mode for lambda-repl. Uses cmd as backend.

Lines starting with ":" are commands (":help" lists them), and may be shortened to any unambiguous prefix. Every other
line is a statement for the session: a binding or a λ-term to evaluate.
"""

import cmd
import glob
import logging
import os

from lambda_repl.lang.error import GenericException
from lambda_repl.lang.session import Session
from lambda_repl.pure.parser import parse_term
from lambda_repl.pure.term import render

logger = logging.getLogger(__name__)

COMMAND_PREFIX = ":"
SWITCHES = {"on": True, "off": False}


class Shell(cmd.Cmd):
    """Lambda calculus interpreter shell."""
    intro = "λ-calculus interpreter :: normal-order reduction\nType ':help' for more information."
    prompt = "λ> "
    secondary_prompt = ". "  # used for line continuations
    _tmp_prompt = "λ> "      # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if "stdin" in kwargs:
            self.use_rawinput = False

        self.sess = sess
        self.sess.error_handler.fatal = False

        self._tmp_line = ""
        self.line_num = 0

    def _print(self, text=""):
        print(text, file=self.stdout)

    def run(self):
        """Runs cmdloop until :quit or EOF. Ctrl-C at the prompt discards the current line instead of exiting."""
        intro = self.intro
        while True:
            try:
                self.cmdloop(intro)
                return
            except KeyboardInterrupt:
                self._print("^C")
                intro = ""
                self._tmp_line = ""
                self.prompt = self._tmp_prompt

    def command_names(self):
        return sorted(name[3:] for name in self.get_names() if name.startswith("do_") and name != "do_EOF")

    def match_command(self, command):
        """Returns the full name of command, which may be any unambiguous prefix, or None."""
        names = self.command_names()
        if command in names:
            return command
        candidates = [name for name in names if name.startswith(command)]
        return candidates[0] if len(candidates) == 1 and command else None

    def parseline(self, line):
        """Only lines starting with COMMAND_PREFIX are commands; everything else is left for default."""
        stripped = line.strip()
        if stripped == "EOF":
            return "EOF", "", stripped
        if not stripped.startswith(COMMAND_PREFIX):
            return "", stripped, stripped

        command, arg, __ = super().parseline(stripped[len(COMMAND_PREFIX):])
        return command or "", arg or "", stripped

    def onecmd(self, line):
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            command, arg, stripped = self.parseline(line)
            if command == "EOF":
                return self.do_EOF(arg)
            if self._tmp_line:
                return self.default(line)

            line = stripped
            if not line:
                return self.emptyline()
            if not line.startswith(COMMAND_PREFIX):
                return self.default(line)

            name = self.match_command(command)
            if name is None:
                raise GenericException("invalid command: '{}'", line, diagnosis=False)

            logger.debug("running command '%s' with '%s'", name, arg)
            return getattr(self, "do_" + name)(arg)

    def default(self, line):
        """Executes arbitrary statement."""
        self.line_num += 1
        line, add_to_prev = Session.preprocess_line(f"{self._tmp_line} {line}" if self._tmp_line else line)

        if add_to_prev:
            self._tmp_line = line
            self.prompt = self.secondary_prompt
            return

        self._tmp_line = ""
        self.prompt = self._tmp_prompt

        self.sess.add(line, self.line_num)
        self.sess.flush()

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return False

    @staticmethod
    def _switch(arg):
        """Parses an on/off argument."""
        try:
            return SWITCHES[arg.lower()]
        except KeyError:
            raise GenericException("expected 'on' or 'off', got '{}'", arg, diagnosis=False)

    def do_help(self, arg):
        """Shows help for a command (:help step), or a short intro."""
        if arg:
            name = self.match_command(arg.lstrip(COMMAND_PREFIX))
            if name is None:
                raise GenericException("invalid command: '{}'", arg, diagnosis=False)
            return super().do_help(name)

        self._print("Welcome to the λ-calculus interpreter!\n\n"
                    "Type a λ-term to reduce it to normal form, e.g. '(\\x. \\y. x) a b'. Both '\\' and 'λ' \n"
                    "start an abstraction. Bind a name with 'id = \\x. x'; names are looked up when a term \n"
                    "using them is reduced, and a λ-bound variable always shadows a binding of the same name.\n\n"
                    "Commands:")
        for name in self.command_names():
            doc = getattr(self, "do_" + name).__doc__ or ""
            self._print(f"  {COMMAND_PREFIX}{name:<8} {doc.splitlines()[0] if doc else ''}")

    def do_env(self, arg):
        """Lists bindings, or shows one (:env NAME)."""
        if arg:
            term = self.sess.environment.resolve(arg)
            if term is None:
                raise GenericException("'{}' is not bound", arg, diagnosis=False)
            self._print(f"{arg} = {render(term)}")
            return

        for name, term in self.sess.environment.list():
            self._print(f"{name} = {render(term)}")

    def do_load(self, arg):
        """Runs a .lc file, defining its bindings (:load FILE)."""
        if not arg:
            raise GenericException(":load expects FILE", diagnosis=False)
        self.sess.load(arg)

    def do_save(self, arg):
        """Writes all bindings to a .lc file (:save FILE)."""
        if not arg:
            raise GenericException(":save expects FILE", diagnosis=False)
        self.sess.save(arg)
        self._print(f"saved {len(self.sess.environment)} bindings to '{arg}'")

    def do_step(self, arg):
        """Performs one reduction step of a new λ-term (:step TERM), or of the current one (:step)."""
        reduced = self.sess.step(parse_term(arg) if arg else None)
        if reduced is None:
            self._print(f"normal form: {self.sess.show(self.sess.current)}")
        else:
            self._print(f"→ {render(reduced)}")

    def do_limit(self, arg):
        """Shows or sets the maximum number of steps per evaluation (:limit N, 0 for no limit)."""
        if arg:
            if not arg.isdigit():
                raise GenericException("'{}' is not a valid step limit", arg, diagnosis=False)
            self.sess.settings.max_steps = int(arg) or None

        limit = self.sess.settings.max_steps
        self._print(f"step limit: {limit if limit is not None else 'none'}")

    def do_trace(self, arg):
        """Shows or toggles printing of every intermediate term (:trace on|off)."""
        if arg:
            self.sess.settings.trace = self._switch(arg)
        self._print(f"trace: {'on' if self.sess.settings.trace else 'off'}")

    def do_names(self, arg):
        """Shows or toggles showing results with binding names (:names on|off).

        Among alpha-equivalent bindings the one defined first is shown: with the bundled prelude, zero and pred one
        print as false, and K prints as true. Turn names off to see the λ-term itself.
        """
        if arg:
            self.sess.settings.names = self._switch(arg)
        self._print(f"names: {'on' if self.sess.settings.names else 'off'}")

    def do_quit(self, arg):
        """Exits interpreter."""
        return True

    do_exit = do_quit

    def do_EOF(self, arg):
        """Exits interpreter."""
        self._print()
        return self.do_quit(arg)

    def _complete_bindings(self, text):
        return [name for name in self.sess.environment.names() if name.startswith(text)]

    def completenames(self, text, *ignored):
        """Completion at the start of a statement."""
        return self._complete_bindings(text)

    def completedefault(self, text, line, begidx, endidx):
        if line[:begidx].strip() == COMMAND_PREFIX:
            return [name for name in self.command_names() if name.startswith(text)]
        return self._complete_bindings(text)

    def complete_step(self, text, *ignored):
        return self._complete_bindings(text)

    complete_env = complete_step

    def complete_trace(self, text, *ignored):
        return [switch for switch in SWITCHES if switch.startswith(text.lower())]

    complete_names = complete_trace

    def complete_load(self, text, line, begidx, endidx):
        path = line[:endidx].split(" ")[-1]
        offset = len(path) - len(text)  # readline splits on "/", so text may only be the last component
        matches = []
        for match in sorted(glob.glob(path + "*")):
            if os.path.isdir(match):
                match += os.sep
            matches.append(match[offset:])
        return matches

    complete_save = complete_load
