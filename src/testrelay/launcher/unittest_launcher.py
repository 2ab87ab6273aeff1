# src/testrelay/launcher/unittest_launcher.py

"""
Runs unittest tests and streams each outcome to a testrelay result server.

This script is executed by the project's own interpreter, so it must only
use the standard library and must not import testrelay.

Usage:
    python unittest_launcher.py --result-port=PORT [--us=DIR] [--up=PATTERN]
        [--uvInt=1|2] [--uf] [-tTEST_ID] [--testFile=PATH]
"""

import argparse
import os
import socket
import sys
import unittest

HEADER_DELIMITER = b":"
FIELD_SEPARATOR = "\x1f"
RESULT_HOST = "127.0.0.1"


class ResultChannel:
    """Writes length-prefixed frames to the result server."""

    def __init__(self, port):
        self._sock = socket.create_connection((RESULT_HOST, port))

    def send(self, command, *fields):
        clean = [str(value).replace(FIELD_SEPARATOR, " ") for value in fields]
        payload = FIELD_SEPARATOR.join([command] + clean).encode("utf-8")
        self._sock.sendall(str(len(payload)).encode("ascii") + HEADER_DELIMITER + payload)

    def close(self):
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self._sock.close()


class RelayTestResult(unittest.TextTestResult):
    """A TextTestResult that also reports every outcome over the channel."""

    channel = None

    def __init__(self, stream, descriptions, verbosity, **kwargs):
        super().__init__(stream, descriptions, verbosity, **kwargs)
        self._reported = set()

    def _report(self, test, outcome, message="", traceback=""):
        test_id = test.id()
        if test_id in self._reported:
            return
        self._reported.add(test_id)
        self.channel.send("result", test_id, outcome, message, traceback)

    def _failure(self, test, err, outcome):
        exc_type, exc_value, _ = err
        message = "{}: {}".format(exc_type.__name__, exc_value)
        self._report(test, outcome, message, self._exc_info_to_string(err, test))

    def startTest(self, test):
        super().startTest(test)
        self.channel.send("start", test.id())

    def addSuccess(self, test):
        super().addSuccess(test)
        self._report(test, "passed")

    def addFailure(self, test, err):
        super().addFailure(test, err)
        self._failure(test, err, "failed")

    def addError(self, test, err):
        super().addError(test, err)
        self._failure(test, err, "error")

    def addSkip(self, test, reason):
        super().addSkip(test, reason)
        self._report(test, "skipped", reason)

    def addExpectedFailure(self, test, err):
        super().addExpectedFailure(test, err)
        self._report(test, "passed", "expected failure")

    def addUnexpectedSuccess(self, test):
        super().addUnexpectedSuccess(test)
        self._report(test, "failed", "unexpected success")

    def addSubTest(self, test, subtest, err):
        super().addSubTest(test, subtest, err)
        if err is not None:
            outcome = "failed" if issubclass(err[0], test.failureException) else "error"
            self._failure(test, err, outcome)


def parse_args(argv):
    parser = argparse.ArgumentParser(description=__doc__, allow_abbrev=False)
    parser.add_argument("--result-port", type=int, required=True)
    parser.add_argument("--us", default=".", help="start directory for discovery")
    parser.add_argument("--up", default="test*.py", help="discovery file pattern")
    parser.add_argument("--uvInt", type=int, default=1, help="verbosity")
    parser.add_argument("--uf", action="store_true", help="stop on first failure")
    parser.add_argument("-t", dest="tests", action="append", default=[], help="test id to run")
    parser.add_argument("--testFile", default=None, help="file declaring the test id")
    args, _unknown = parser.parse_known_args(argv)
    return args


def load_tests(args):
    start_directory = os.path.abspath(args.us)
    sys.path.insert(0, start_directory)
    if args.testFile:
        sys.path.append(os.path.dirname(os.path.abspath(args.testFile)))

    loader = unittest.TestLoader()
    if args.tests:
        return loader.loadTestsFromNames([test_id.strip() for test_id in args.tests])
    return loader.discover(start_directory, pattern=args.up)


def main(argv=None):
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        channel = ResultChannel(args.result_port)
    except OSError as e:
        sys.stderr.write("Cannot connect to result server on port {}: {}\n".format(args.result_port, e))
        return 2

    RelayTestResult.channel = channel
    try:
        try:
            suite = load_tests(args)
        except Exception as e:
            channel.send("error", "Failed to load tests: {}: {}".format(type(e).__name__, e))
            return 2

        channel.send("log", "Running {} test(s)".format(suite.countTestCases()))
        runner = unittest.TextTestRunner(
            stream=sys.stdout,
            verbosity=args.uvInt,
            failfast=args.uf,
            resultclass=RelayTestResult,
        )
        result = runner.run(suite)
        return 0 if result.wasSuccessful() else 1
    finally:
        channel.close()


if __name__ == "__main__":
    sys.exit(main())
