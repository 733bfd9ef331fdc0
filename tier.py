"""
Tier glue – response emission and error normalisation for the pixel demo.

  send_response          – write status line, headers and body to an Output.
  error_handler          – turn recoverable error signals into exceptions.
  shutdown_function      – last-resort 500 page for fatal errors.
  TierMiddleware         – WSGI wrapper that runs the two handlers per request.
  add_injection_params   – apply an InjectionParams record to an injector.
"""

import contextlib
import logging
import traceback
import warnings
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Optional

import flask
from werkzeug.http import HTTP_STATUS_CODES

logger = logging.getLogger(__name__)


class Severity(IntEnum):
    E_ERROR = 1
    E_WARNING = 2
    E_PARSE = 4
    E_NOTICE = 8
    E_CORE_ERROR = 16
    E_CORE_WARNING = 32
    E_COMPILE_ERROR = 64
    E_COMPILE_WARNING = 128
    E_USER_ERROR = 256
    E_USER_WARNING = 512
    E_USER_NOTICE = 1024
    E_STRICT = 2048
    E_RECOVERABLE_ERROR = 4096
    E_DEPRECATED = 8192
    E_USER_DEPRECATED = 16384
    E_ALL = 32767


FATAL_ERRORS = frozenset({
    Severity.E_ERROR,
    Severity.E_PARSE,
    Severity.E_USER_ERROR,
    Severity.E_CORE_ERROR,
    Severity.E_CORE_WARNING,
    Severity.E_COMPILE_ERROR,
    Severity.E_COMPILE_WARNING,
})

ERROR_PAGE = "<html><body><h1>500 Internal Server Error</h1><hr/>{msg}</body></html>"


class TierException(Exception):
    pass


# ── Error state ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LastError:
    type: int
    message: str
    file: str
    line: int


class ErrorContext:
    """Error-reporting mask plus the last recorded error of a request."""

    def __init__(self, reporting: int = Severity.E_ALL) -> None:
        self.reporting = int(reporting)
        self.last_error: Optional[LastError] = None

    def record(self, type: int, message: str, file: str, line: int) -> None:
        self.last_error = LastError(int(type), message, file, line)

    def record_exception(self, exc: BaseException) -> None:
        frames = traceback.extract_tb(exc.__traceback__)
        if frames:
            file, line = frames[-1].filename, frames[-1].lineno
        else:
            file, line = "Unknown", 0
        message = f"Uncaught {type(exc).__name__}: {exc}"
        self.record(Severity.E_ERROR, message, file, line or 0)

    def clear(self) -> None:
        self.last_error = None

    @contextlib.contextmanager
    def silenced(self):
        previous = self.reporting
        self.reporting = 0
        try:
            yield
        finally:
            self.reporting = previous


# ── Transport ─────────────────────────────────────────────────────────────────

class Output:
    """Header and body buffer for one response.

    Headers stay pending until ``flush()`` (or the first ``write()``); after
    that they are frozen.  When constructed with a WSGI ``start_response``
    the flush hands status and headers to it.
    """

    def __init__(self, start_response: Optional[Callable] = None) -> None:
        self._start_response = start_response
        self.status_line = "HTTP/1.0 200 OK"
        self.headers: list[tuple[str, str]] = []
        self.body: list[bytes] = []
        self.headers_sent = False

    @property
    def status(self) -> str:
        return self.status_line.split(" ", 1)[1]

    def header(self, line: str, replace: bool = True) -> None:
        if self.headers_sent:
            logger.warning("Cannot modify header information, headers already sent: %s", line)
            return
        if line[:5].upper() == "HTTP/":
            self.status_line = line.strip()
            return
        name, sep, value = line.partition(":")
        if not sep:
            raise ValueError(f"Malformed header line: {line!r}")
        name, value = name.strip(), value.strip()
        if replace:
            self.headers = [(n, v) for n, v in self.headers if n.lower() != name.lower()]
        self.headers.append((name, value))

    def header_remove(self, name: Optional[str] = None) -> None:
        if self.headers_sent:
            return
        if name is None:
            self.headers.clear()
        else:
            self.headers = [(n, v) for n, v in self.headers if n.lower() != name.lower()]

    def flush(self) -> None:
        if self.headers_sent:
            return
        self.headers_sent = True
        if self._start_response is not None:
            self._start_response(self.status, list(self.headers))

    def write(self, data) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.flush()
        self.body.append(data)

    def start_response(self, status, headers, exc_info=None):
        """WSGI ``start_response`` for a wrapped application."""
        self.status_line = f"HTTP/1.1 {status}"
        self.headers = list(headers)
        self.headers_sent = True
        if exc_info is None:
            return self._start_response(status, headers)
        return self._start_response(status, headers, exc_info)

    def to_response(self) -> flask.Response:
        return flask.Response(b"".join(self.body), status=self.status, headers=self.headers)


# ── Responses ─────────────────────────────────────────────────────────────────

@dataclass
class Response:
    body: Any = ""
    status: int = 200
    reason_phrase: str = ""
    headers: list = field(default_factory=list)

    def add_header(self, name: str, value: str) -> None:
        self.headers.append((name, value))

    def get_all_header_lines(self) -> list[str]:
        return [f"{name}: {value}" for name, value in self.headers]


def _is_stringable(body) -> bool:
    return type(body).__str__ is not object.__str__


def send_error_response(request, body, error_code: int, output: Output) -> None:
    send_response(request, Response(body=body, status=error_code), output)


def send_response(request, response: Response, output: Output, auto_add_reason: bool = True) -> None:
    """Emit ``response`` for ``request`` (a WSGI environ mapping)."""
    status_code = response.status
    reason = response.reason_phrase
    if auto_add_reason and not reason:
        reason = HTTP_STATUS_CODES.get(status_code, "")
        response.reason_phrase = reason

    status_line = f"{request['SERVER_PROTOCOL']} {status_code}"
    if reason:
        status_line += f" {reason}"

    output.header(status_line)
    for header_line in response.get_all_header_lines():
        output.header(header_line, replace=False)

    output.flush()

    body = response.body
    if isinstance(body, (str, bytes)):
        output.write(body)
    elif _is_stringable(body):
        output.write(str(body))
    elif callable(body):
        body()
    else:
        logger.warning("Response body of type %s was not emitted", type(body).__name__)


# ── Error normalisation ───────────────────────────────────────────────────────

def error_handler(context: ErrorContext, errno: int, errstr: str, errfile: str, errline: int) -> bool:
    """Return True when the error is ignored, False when it is fatal.

    Anything else is raised as a TierException.
    """
    if context.reporting == 0:
        return True
    if errno == Severity.E_DEPRECATED:
        return True
    if errno in (Severity.E_CORE_ERROR, Severity.E_ERROR):
        return False

    message = f"Error: [{int(errno)}] {errstr} in file {errfile} on line {errline}<br />\n"
    raise TierException(message)


def _warning_severity(category) -> Severity:
    if issubclass(category, (DeprecationWarning, PendingDeprecationWarning)):
        return Severity.E_DEPRECATED
    if issubclass(category, UserWarning):
        return Severity.E_USER_WARNING
    return Severity.E_WARNING


@contextlib.contextmanager
def capture_warnings(context: ErrorContext):
    """Route Python warnings raised in the block through ``error_handler``."""

    def showwarning(message, category, filename, lineno, file=None, line=None):
        severity = _warning_severity(category)
        if not error_handler(context, severity, str(message), filename, lineno):
            context.record(severity, str(message), filename, lineno)

    with warnings.catch_warnings():
        warnings.simplefilter("always")
        warnings.showwarning = showwarning
        yield


def shutdown_function(context: ErrorContext, output: Output) -> None:
    last_error = context.last_error
    if last_error is None or last_error.type not in FATAL_ERRORS:
        return
    if output.headers_sent:
        return

    output.header_remove()
    output.header("HTTP/1.0 500 Internal Server Error")
    output.header("Content-Type: text/html; charset=utf-8")

    msg = "Fatal error: %s in %s on line %d" % (last_error.message, last_error.file, last_error.line)
    msg = f'<pre style="color:red;">{msg}</pre>'
    output.write(ERROR_PAGE.format(msg=msg))


class TierMiddleware:
    """Per-request terminal hook around a WSGI app.

    Every request gets its own ErrorContext from ``context_factory``.
    """

    def __init__(self, wsgi_app, context_factory: Callable[[], ErrorContext] = ErrorContext) -> None:
        self.wsgi_app = wsgi_app
        self.context_factory = context_factory

    def __call__(self, environ, start_response):
        output = Output(start_response)
        context = self.context_factory()
        environ["tier.context"] = context

        try:
            with capture_warnings(context):
                result = self.wsgi_app(environ, output.start_response)
        except Exception as exc:
            logger.exception("Unhandled error for %s", environ.get("PATH_INFO", "/"))
            context.record_exception(exc)
            result = output.body

        shutdown_function(context, output)
        return result


def init_app(app) -> None:
    """Route a Flask app's uncaught errors through TierMiddleware."""
    app.config["PROPAGATE_EXCEPTIONS"] = True
    app.wsgi_app = TierMiddleware(app.wsgi_app)


# ── Injection ─────────────────────────────────────────────────────────────────

@dataclass
class InjectionParams:
    aliases: dict = field(default_factory=dict)
    shares: list = field(default_factory=list)
    params: dict = field(default_factory=dict)
    delegates: dict = field(default_factory=dict)
    prepares: dict = field(default_factory=dict)


def add_injection_params(injector, injection_params: InjectionParams) -> None:
    for original, alias in injection_params.aliases.items():
        injector.alias(original, alias)

    for share in injection_params.shares:
        injector.share(share)

    for param_name, value in injection_params.params.items():
        injector.define_param(param_name, value)

    for class_name, factory in injection_params.delegates.items():
        injector.delegate(class_name, factory)

    for class_name, prepare in injection_params.prepares.items():
        injector.prepare(class_name, prepare)


def throw_wrong_type_exception(result) -> None:
    if result is None:
        raise TierException("Return value of tier must be either a response or a tier, null given.")

    if type(result).__module__ == "builtins":
        detail = f"variable of type '{type(result).__name__}'"
    else:
        detail = f"object of type '{type(result).__module__}.{type(result).__qualname__}'"

    raise TierException(
        f"Return value of tier must be either a response or a tier, instead {detail} returned."
    )
