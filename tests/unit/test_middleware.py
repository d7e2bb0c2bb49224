"""
Unit tests for the middleware pipeline and access logging.
"""

import json
import logging

import pytest

from procinspect.http.request import parse_request
from procinspect.http.response import ok_json
from procinspect.middleware import (
    AccessKeyMiddleware,
    LoggingMiddleware,
    Middleware,
    MiddlewarePipeline,
    redact_query,
)


class Recorder(Middleware):
    """Appends its tag before and after calling next."""

    def __init__(self, tag, trace):
        self.tag = tag
        self.trace = trace

    def __call__(self, request, next):
        self.trace.append(f"{self.tag}:before")
        response = next(request)
        self.trace.append(f"{self.tag}:after")
        return response


class TestMiddlewarePipeline:

    def test_order(self):
        """Test the first middleware added is outermost."""
        trace = []

        def handler(request):
            trace.append("handler")
            return ok_json({})

        pipeline = MiddlewarePipeline().use(Recorder("a", trace), Recorder("b", trace))
        pipeline.wrap(handler)(parse_request(b"GET / HTTP/1.1"))

        assert trace == ["a:before", "b:before", "handler", "b:after", "a:after"]
        assert len(pipeline) == 2

    def test_empty_pipeline_is_handler(self):
        def handler(request):
            return ok_json({})

        assert MiddlewarePipeline().wrap(handler) is handler


class TestRedactQuery:

    @pytest.mark.parametrize("query,expected", [
        ("key=debugger", "key=***"),
        ("x=1&key=debugger", "x=1&key=***"),
        ("key=wrong&key=debugger", "key=***&key=***"),
        ("xkey=abc", "xkey=abc"),
        ("", ""),
    ])
    def test_redact(self, query, expected):
        assert redact_query(query) == expected


class TestLoggingMiddleware:

    def test_logs_without_secret(self, caplog):
        pipeline = MiddlewarePipeline().use(
            LoggingMiddleware(),
            AccessKeyMiddleware("debugger"),
        )
        handler = pipeline.wrap(lambda request: ok_json({"pids": []}))

        with caplog.at_level(logging.INFO, logger="procinspect.access"):
            handler(parse_request(b"GET /proc?key=debugger HTTP/1.1", ("10.0.0.5", 1234)))
            handler(parse_request(b"GET /proc?key=debuggr HTTP/1.1", ("10.0.0.5", 1234)))

        access = [r.getMessage() for r in caplog.records if r.name == "procinspect.access"]
        assert len(access) == 2
        assert '"GET /proc?key=***" 200' in access[0]
        assert '"GET /proc?key=***" 403' in access[1]
        assert all("debugg" not in line for line in access)
        assert access[0].startswith("10.0.0.5 - - [")

    def test_json_format(self, caplog):
        handler = MiddlewarePipeline().use(LoggingMiddleware(log_format="json")).wrap(
            lambda request: ok_json({"files": ["status"]})
        )

        with caplog.at_level(logging.INFO, logger="procinspect.access"):
            response = handler(parse_request(b"GET /proc/1?key=debugger HTTP/1.1"))

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["method"] == "GET"
        assert entry["path"] == "/proc/1"
        assert entry["query"] == "key=***"
        assert entry["status_code"] == 200
        assert entry["content_length"] == len(response.body)

    def test_exception_reraised(self):
        def broken(request):
            raise RuntimeError("broken")

        handler = MiddlewarePipeline().use(LoggingMiddleware()).wrap(broken)
        with pytest.raises(RuntimeError):
            handler(parse_request(b"GET / HTTP/1.1"))
