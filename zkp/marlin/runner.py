"""
External process runner
=======================

Optional alternate artifact source for the pipeline. A runner is any object
with

    run(operation, args) -> ProcessResult

ProcessRunner runs `<executable> <operation> <args...>` with subprocess and
collects stdout. The first JSON object in stdout (single-line or
pretty-printed) becomes `parsed_json`. A non-zero exit raises ProcessError.

**Operations** (named after the demo CLI):
  | operation        | args                                     |
  |------------------|------------------------------------------|
  | universal_setup  | num_constraints num_variables num_non_zero |
  | index            | circuit name                             |
  | prove            | witness values, public input values      |
  | verify           | public input values                      |

Usage:
    >>> runner = ProcessRunner("./target/release/marlin_demo")
    >>> result = runner.run("universal_setup", [10, 10, 10])
    >>> result.parsed_json.get("setup_time")
"""

import json
import logging
import re
import subprocess
from collections import namedtuple

from zkp.marlin.errors import ProcessError

logger = logging.getLogger(__name__)

TIME_MARKER = re.compile(r"\((\d+)\s*ms\)")

ProcessResult = namedtuple("ProcessResult", ["success", "stdout", "parsed_json", "exit_code"])


def parse_json_output(stdout):
    """First JSON object found in stdout, or None.

    Scans for lines starting with '{' and decodes from there, so an object
    spanning several lines is accepted.
    """
    decoder = json.JSONDecoder()
    offset = 0
    for line in stdout.splitlines(keepends=True):
        stripped = line.lstrip()
        if stripped.startswith("{"):
            start = offset + (len(line) - len(stripped))
            try:
                obj, _ = decoder.raw_decode(stdout, start)
            except ValueError:
                obj = None
            if isinstance(obj, dict):
                return obj
        offset += len(line)
    return None


def extract_time_ms(stdout, phase=None):
    """Milliseconds from a "(<n> ms)" marker, or None.

    With `phase`, only lines mentioning it (case-insensitive) are considered.
    """
    for line in stdout.splitlines():
        if phase is not None and phase.lower() not in line.lower():
            continue
        m = TIME_MARKER.search(line)
        if m:
            return int(m.group(1))
    return None


class ProcessRunner:
    """Runs the external demo executable.

    Args:
        executable: program path, or a list (e.g. [sys.executable, "demo.py"])
        timeout: seconds before the child is killed (None waits forever)
        cwd: working directory for the child
    """

    def __init__(self, executable, timeout=None, cwd=None):
        if isinstance(executable, (list, tuple)):
            self.command = list(executable)
        else:
            self.command = [executable]
        self.timeout = timeout
        self.cwd = cwd

    def run(self, operation, args=()):
        argv = self.command + [operation] + [str(a) for a in args]
        logger.info("running %s", " ".join(argv))
        try:
            proc = subprocess.run(argv, capture_output=True, text=True,
                                  timeout=self.timeout, cwd=self.cwd)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ProcessError("could not run '{}': {}".format(operation, e)) from e

        logger.debug("exit code %s for %s", proc.returncode, operation)
        if proc.returncode != 0:
            raise ProcessError(
                "'{}' exited with code {}: {}".format(
                    operation, proc.returncode, (proc.stderr or proc.stdout).strip()),
                exit_code=proc.returncode,
                output=proc.stdout)
        return ProcessResult(True, proc.stdout, parse_json_output(proc.stdout), proc.returncode)
