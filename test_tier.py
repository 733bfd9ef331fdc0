"""
Tests for response emission, error normalisation and injection glue.
"""

import logging
import warnings

import pytest
from werkzeug.test import Client

from tier import (
    FATAL_ERRORS,
    ErrorContext,
    InjectionParams,
    Output,
    Response,
    Severity,
    TierException,
    TierMiddleware,
    add_injection_params,
    capture_warnings,
    error_handler,
    send_error_response,
    send_response,
    shutdown_function,
    throw_wrong_type_exception,
)

REQUEST = {"SERVER_PROTOCOL": "HTTP/1.1"}


# ── send_response ─────────────────────────────────────────────────────────────

def test_send_error_response():
    output = Output()
    send_error_response(REQUEST, "not found", 404, output)
    assert output.status_line == "HTTP/1.1 404 Not Found"
    assert output.body == [b"not found"]
    assert output.headers_sent


@pytest.mark.parametrize("code, reason", [
    (200, "OK"),
    (201, "Created"),
    (301, "Moved Permanently"),
    (404, "Not Found"),
    (500, "Internal Server Error"),
    (503, "Service Unavailable"),
])
def test_known_status_gets_reason(code, reason):
    output = Output()
    response = Response(status=code)
    send_response(REQUEST, response, output)
    assert output.status_line == f"HTTP/1.1 {code} {reason}"
    assert response.reason_phrase == reason


@pytest.mark.parametrize("code", [299, 599, 999])
def test_unknown_status_has_no_reason(code):
    output = Output()
    send_response(REQUEST, Response(status=code), output)
    assert output.status_line == f"HTTP/1.1 {code}"


def test_reason_not_added_when_disabled():
    output = Output()
    send_response(REQUEST, Response(status=404), output, auto_add_reason=False)
    assert output.status_line == "HTTP/1.1 404"


def test_explicit_reason_is_kept():
    output = Output()
    send_response({"SERVER_PROTOCOL": "HTTP/1.0"}, Response(status=404, reason_phrase="Gone Fishing"), output)
    assert output.status_line == "HTTP/1.0 404 Gone Fishing"


def test_response_headers_are_additive():
    output = Output()
    output.header("Set-Cookie: early=0")
    response = Response(headers=[("Set-Cookie", "a=1"), ("X-Trace", "t"), ("Set-Cookie", "b=2")])
    send_response(REQUEST, response, output)
    assert output.headers == [
        ("Set-Cookie", "early=0"),
        ("Set-Cookie", "a=1"),
        ("X-Trace", "t"),
        ("Set-Cookie", "b=2"),
    ]


def test_stringable_body():
    class Greeting:
        def __str__(self):
            return "hello"

    output = Output()
    send_response(REQUEST, Response(body=Greeting()), output)
    assert output.body == [b"hello"]


def test_callable_body_writes_after_headers():
    output = Output()
    seen = []

    def body():
        seen.append(output.headers_sent)
        output.write("streamed")

    send_response(REQUEST, Response(body=body), output)
    assert seen == [True]
    assert output.body == [b"streamed"]


def test_unrecognised_body_emits_nothing(caplog):
    output = Output()
    with caplog.at_level(logging.WARNING, logger="tier"):
        send_response(REQUEST, Response(body=object()), output)
    assert output.body == []
    assert output.headers_sent
    assert "was not emitted" in caplog.text


def test_to_response():
    output = Output()
    send_response(REQUEST, Response(body="x", status=201, headers=[("X-A", "1"), ("X-A", "2")]), output)
    response = output.to_response()
    assert response.status_code == 201
    assert response.headers.getlist("X-A") == ["1", "2"]
    assert response.data == b"x"


# ── Output ────────────────────────────────────────────────────────────────────

def test_header_replaces_by_default():
    output = Output()
    output.header("Content-Type: text/plain")
    output.header("content-type: text/html")
    assert output.headers == [("content-type", "text/html")]


def test_headers_frozen_after_flush():
    output = Output()
    output.header("X-A: 1")
    output.flush()
    output.header("X-B: 2")
    output.header_remove()
    assert output.headers == [("X-A", "1")]


def test_malformed_header_line():
    with pytest.raises(ValueError):
        Output().header("no colon here")


def test_flush_calls_start_response_once():
    calls = []
    output = Output(lambda status, headers: calls.append((status, headers)))
    output.header("HTTP/1.1 202 Accepted")
    output.header("X-A: 1")
    output.write("a")
    output.write(b"b")
    assert calls == [("202 Accepted", [("X-A", "1")])]
    assert output.body == [b"a", b"b"]


# ── error_handler ─────────────────────────────────────────────────────────────

def test_masked_reporting_is_handled():
    context = ErrorContext(reporting=0)
    assert error_handler(context, Severity.E_WARNING, "x", "f.py", 1) is True


def test_silenced_restores_reporting():
    context = ErrorContext()
    with context.silenced():
        assert error_handler(context, Severity.E_NOTICE, "x", "f.py", 1) is True
    assert context.reporting == Severity.E_ALL


def test_deprecated_is_handled():
    assert error_handler(ErrorContext(), Severity.E_DEPRECATED, "old", "f.py", 1) is True


@pytest.mark.parametrize("severity", [Severity.E_ERROR, Severity.E_CORE_ERROR])
def test_fatal_is_not_handled(severity):
    assert error_handler(ErrorContext(), severity, "boom", "f.py", 1) is False


@pytest.mark.parametrize("severity", [
    Severity.E_WARNING,
    Severity.E_NOTICE,
    Severity.E_USER_WARNING,
    Severity.E_USER_NOTICE,
    Severity.E_STRICT,
    Severity.E_RECOVERABLE_ERROR,
    Severity.E_USER_DEPRECATED,
])
def test_recoverable_errors_raise(severity):
    with pytest.raises(TierException) as exc_info:
        error_handler(ErrorContext(), severity, "bad thing", "/srv/app.py", 42)
    message = str(exc_info.value)
    assert f"[{int(severity)}]" in message
    assert "bad thing" in message
    assert "/srv/app.py" in message
    assert "line 42" in message


def test_warnings_become_exceptions():
    context = ErrorContext()
    with pytest.raises(TierException, match=r"Error: \[2\] careful"):
        with capture_warnings(context):
            warnings.warn("careful", RuntimeWarning)


def test_user_warning_severity():
    with pytest.raises(TierException, match=r"\[512\]"):
        with capture_warnings(ErrorContext()):
            warnings.warn("mine")


def test_deprecation_warnings_are_ignored():
    context = ErrorContext()
    with capture_warnings(context):
        warnings.warn("old api", DeprecationWarning)
    assert context.last_error is None


def test_silenced_warnings_are_ignored():
    context = ErrorContext()
    with capture_warnings(context), context.silenced():
        warnings.warn("quiet", RuntimeWarning)


# ── shutdown_function ─────────────────────────────────────────────────────────

def test_record_exception_uses_innermost_frame():
    context = ErrorContext()
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        context.record_exception(exc)
    assert context.last_error.type == Severity.E_ERROR
    assert context.last_error.message == "Uncaught RuntimeError: boom"
    assert context.last_error.file.endswith("test_tier.py")


@pytest.mark.parametrize("severity", sorted(FATAL_ERRORS))
def test_shutdown_emits_error_page(severity):
    context = ErrorContext()
    context.record(severity, "out of memory", "/srv/app.py", 7)
    output = Output()
    output.header("X-Pending: 1")
    shutdown_function(context, output)
    assert output.status_line == "HTTP/1.0 500 Internal Server Error"
    assert ("X-Pending", "1") not in output.headers
    assert b"".join(output.body).decode() == (
        "<html><body><h1>500 Internal Server Error</h1><hr/>"
        '<pre style="color:red;">Fatal error: out of memory in /srv/app.py on line 7</pre>'
        "</body></html>"
    )


def test_shutdown_after_headers_sent_is_silent():
    context = ErrorContext()
    context.record(Severity.E_ERROR, "boom", "f.py", 1)
    output = Output()
    output.write("partial")
    shutdown_function(context, output)
    assert output.body == [b"partial"]
    assert output.status_line == "HTTP/1.0 200 OK"


def test_shutdown_ignores_non_fatal():
    context = ErrorContext()
    context.record(Severity.E_WARNING, "meh", "f.py", 1)
    output = Output()
    shutdown_function(context, output)
    shutdown_function(ErrorContext(), output)
    assert output.body == []
    assert not output.headers_sent


# ── TierMiddleware ────────────────────────────────────────────────────────────

def _ok_app(environ, start_response):
    start_response("200 OK", [("Content-Type", "text/plain")])
    return [b"fine"]


def _failing_app(environ, start_response):
    raise RuntimeError("kaput")


def _warning_app(environ, start_response):
    warnings.warn("careful", RuntimeWarning)
    return _ok_app(environ, start_response)


def _late_failing_app(environ, start_response):
    start_response("200 OK", [])
    raise RuntimeError("too late")


def test_middleware_passes_through():
    resp = Client(TierMiddleware(_ok_app)).get("/")
    assert resp.status_code == 200
    assert resp.data == b"fine"


def test_middleware_renders_fatal_page():
    resp = Client(TierMiddleware(_failing_app)).get("/")
    assert resp.status_code == 500
    body = resp.get_data(as_text=True)
    assert "500 Internal Server Error" in body
    assert "Uncaught RuntimeError: kaput" in body
    assert "test_tier.py" in body


def test_middleware_converts_warnings():
    resp = Client(TierMiddleware(_warning_app)).get("/")
    assert resp.status_code == 500
    assert "Error: [2] careful" in resp.get_data(as_text=True)


def test_middleware_keeps_started_response():
    resp = Client(TierMiddleware(_late_failing_app)).get("/")
    assert resp.status_code == 200
    assert resp.data == b""


def test_middleware_uses_fresh_context_per_request():
    contexts = []

    def factory():
        contexts.append(ErrorContext())
        return contexts[-1]

    failing = Client(TierMiddleware(_failing_app, factory))
    ok = Client(TierMiddleware(_ok_app, factory))
    assert failing.get("/").status_code == 500
    assert ok.get("/").status_code == 200
    assert len(contexts) == 2
    assert contexts[0].last_error.message == "Uncaught RuntimeError: kaput"
    assert contexts[1].last_error is None


# ── Injection ─────────────────────────────────────────────────────────────────

class RecordingInjector:
    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def __getattr__(self, name):
        def record(*args):
            if name == self.fail_on:
                raise RuntimeError(f"{name} failed")
            self.calls.append((name,) + args)
        return record


def _params():
    shared = object()
    return shared, InjectionParams(
        aliases={"Example": "getColor", "ActiveNav": "PixelNav"},
        shares=[shared],
        params={"swatch_size": 10},
        delegates={"Pixel": dict},
        prepares={"PixelNav": print},
    )


def test_add_injection_params_order():
    shared, params = _params()
    injector = RecordingInjector()
    add_injection_params(injector, params)
    assert injector.calls == [
        ("alias", "Example", "getColor"),
        ("alias", "ActiveNav", "PixelNav"),
        ("share", shared),
        ("define_param", "swatch_size", 10),
        ("delegate", "Pixel", dict),
        ("prepare", "PixelNav", print),
    ]


def test_add_injection_params_has_no_rollback():
    _, params = _params()
    injector = RecordingInjector(fail_on="define_param")
    with pytest.raises(RuntimeError):
        add_injection_params(injector, params)
    assert [call[0] for call in injector.calls] == ["alias", "alias", "share"]


# ── throw_wrong_type_exception ────────────────────────────────────────────────

def test_wrong_type_none():
    with pytest.raises(TierException, match="null given"):
        throw_wrong_type_exception(None)


def test_wrong_type_builtin():
    with pytest.raises(TierException, match="variable of type 'int'"):
        throw_wrong_type_exception(5)


def test_wrong_type_object():
    class Widget:
        pass

    with pytest.raises(TierException, match=r"object of type '.*Widget'"):
        throw_wrong_type_exception(Widget())
