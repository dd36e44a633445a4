# src/logbuffer/tests/test_logging/test_middleware_integration.py
import io
import json

import pytest
from fastapi import BackgroundTasks, Depends, FastAPI, Request
from starlette.testclient import TestClient

from logbuffer.core.dependencies import get_request_logger
from logbuffer.core.logging.logger import Logger
from logbuffer.core.logging.middleware import BufferedLoggingMiddleware, LOGGER_KEY, SILENCE_KEY


def test_full_mode_emits_one_event_per_request(make_app, capture_logger, events):
    app = make_app(target=capture_logger)

    resp = TestClient(app).get("/")

    assert resp.status_code == 200
    assert len(events) == 1
    assert "Hello" in events[0]["message"]
    assert events[0]["message"] == "Hello\n"


def test_full_mode_collects_all_messages(make_app, capture_logger, events):
    app = make_app(target=capture_logger)

    TestClient(app).get("/many")

    assert len(events) == 1
    assert events[0]["message"] == "one\ntwo\nthree\n"


def test_event_carries_request_and_response_fields(make_app, capture_logger, events):
    app = make_app(target=capture_logger)

    TestClient(app).get("/")

    event = events[0]
    assert event["method"] == "GET"
    assert event["path"] == "/"
    assert event["status"] == 200
    assert event["duration"] >= 0
    assert event["tags"] == []
    assert "@timestamp" in event


def test_logs_json_to_stdout_by_default(make_app, capsys):
    app = make_app()

    resp = TestClient(app).get("/")
    assert resp.status_code == 200

    out = capsys.readouterr().out.strip()
    lines = out.splitlines()
    assert len(lines) == 1
    rec = json.loads(lines[0])
    assert rec["message"] == "Hello\n"


def test_can_set_a_different_target(make_app):
    stream = io.StringIO()
    app = make_app(target=stream)

    TestClient(app).get("/")

    rec = json.loads(stream.getvalue())
    assert rec["message"] == "Hello\n"


def test_can_set_a_different_logger(make_app):
    stream = io.StringIO()
    logger = Logger(stream)
    app = make_app(target=logger)

    seen = {}

    @app.get("/who")
    def who(request_logger: Logger = Depends(get_request_logger)):
        seen["logger"] = request_logger
        return "ok"

    TestClient(app).get("/who")
    TestClient(app).get("/")

    assert seen["logger"] is logger
    rec = json.loads(stream.getvalue().splitlines()[-1])
    assert rec["message"] == "Hello\n"


def test_logging_disabled_emits_nothing(make_app, events):
    app = make_app(target=Logger(events.append), logging=False)

    resp = TestClient(app).get("/many")

    assert resp.status_code == 200
    assert events == []


def test_target_false_disables_buffered_logging(make_app, events):
    app = make_app(target=False, logging=True)

    seen = {}

    @app.get("/scope")
    def scope_view(request: Request):
        seen["logger"] = request.scope.get(LOGGER_KEY)
        return "ok"

    resp = TestClient(app).get("/scope")

    assert resp.status_code == 200
    assert seen["logger"] is None


class TestAdditionalFields:
    def test_adds_request_fields(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            request_fields={"zombie": "groan", "robot": 1001001},
        )
        TestClient(app).get("/")

        assert len(events) == 1
        assert events[0]["zombie"] == "groan"
        assert events[0]["robot"] == 1001001

    def test_provides_request_to_request_fields(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            request_fields={"is_request": lambda request: isinstance(request, Request)},
        )
        TestClient(app).get("/")

        assert events[0]["is_request"] is True

    def test_adds_request_tags(self, make_app, capture_logger, events):
        app = make_app(target=capture_logger, request_tags=["foo", "bar", 123])
        TestClient(app).get("/")

        assert events[0]["tags"] == ["foo", "bar", "123"]

    def test_provides_request_to_request_tags(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            request_tags=["foo", lambda request: Request.__name__ if isinstance(request, Request) else None],
        )
        TestClient(app).get("/")

        assert events[0]["tags"] == ["foo", "Request"]

    def test_adds_response_fields(self, make_app, capture_logger, events):
        app = make_app(target=capture_logger, response_fields={"response": "done"})
        TestClient(app).get("/")

        assert events[0]["response"] == "done"

    def test_provides_headers_to_response_fields(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            response_fields={
                "content_type": lambda headers: headers["content-type"],
            },
        )
        TestClient(app).get("/")

        assert events[0]["content_type"] == "text/plain; charset=utf-8"

    def test_adds_response_tags(self, make_app, capture_logger, events):
        app = make_app(target=capture_logger, response_tags=["tweet", "moo"])
        TestClient(app).get("/")

        assert events[0]["tags"] == ["tweet", "moo"]

    def test_provides_headers_to_response_tags(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            response_tags=[lambda headers: headers["content-type"].split("/")[0], "request"],
        )
        TestClient(app).get("/")

        assert events[0]["tags"] == ["text", "request"]

    def test_response_fields_override_request_fields(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            request_fields={"phase": "request", "kept": 1},
            response_fields={"phase": "response"},
            request_tags=["req"],
            response_tags=["resp"],
        )
        TestClient(app).get("/")

        assert events[0]["phase"] == "response"
        assert events[0]["kept"] == 1
        assert events[0]["tags"] == ["req", "resp"]

    def test_computed_spec_returning_mapping(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            request_fields=lambda request: {"verb": request.method},
        )
        TestClient(app).get("/")

        assert events[0]["verb"] == "GET"


class TestBufferingModes:
    def test_data_mode_emits_one_event_per_message(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            buffering_mode="data",
            request_fields={"zombie": "groan"},
        )
        TestClient(app).get("/many")

        # the last event carries the data added after the last message
        assert [e["message"] for e in events] == ["one\n", "two\n", "three\n", ""]
        assert all(e["zombie"] == "groan" for e in events)
        assert "status" not in events[2]
        assert events[3]["status"] == 200
        assert isinstance(events[3]["duration"], float)

    def test_data_mode_without_messages_emits_response_data(self, capture_logger, events):
        app = FastAPI()
        app.add_middleware(
            BufferedLoggingMiddleware,
            logger=capture_logger,
            buffering_mode="data",
            response_fields={"r": 1},
            response_tags=["done"],
        )

        @app.get("/quiet")
        def quiet():
            return "ok"

        TestClient(app).get("/quiet")

        assert len(events) == 1
        event = events[0]
        assert event["message"] == ""
        assert event["r"] == 1
        assert event["tags"] == ["done"]
        assert event["status"] == 200
        assert event["path"] == "/quiet"

    def test_none_mode_emits_one_event_per_log_call(self, make_app, capture_logger, events):
        app = make_app(
            target=capture_logger,
            buffering_mode="none",
            request_fields={"zombie": "groan"},
        )
        TestClient(app).get("/many")

        assert [e["message"] for e in events] == ["one\n", "two\n", "three\n"]
        # request fields were merged before the first message only
        assert events[0]["zombie"] == "groan"
        assert "zombie" not in events[1]
        assert "zombie" not in events[2]

    def test_none_mode_without_messages_emits_nothing(self, capture_logger, events):
        app = FastAPI()
        app.add_middleware(BufferedLoggingMiddleware, logger=capture_logger, buffering_mode="none")

        @app.get("/quiet")
        def quiet():
            return "ok"

        TestClient(app).get("/quiet")

        assert events == []


class TestErrors:
    def test_handler_error_is_logged_and_reraised(self, make_app, capture_logger, events):
        app = make_app(target=capture_logger)

        with pytest.raises(RuntimeError, match="kaboom"):
            TestClient(app).get("/boom")

        assert len(events) == 1
        event = events[0]
        assert event["status"] == 500
        assert event["error"] == "RuntimeError"
        assert event["error_message"] == "kaboom"
        assert "Traceback" in event["error_trace"]
        assert event["message"] == "about to fail\nRuntimeError: kaboom\n"

    def test_handled_exception_is_logged_from_endpoint(self, capture_logger, events):
        app = FastAPI()
        app.add_middleware(BufferedLoggingMiddleware, logger=capture_logger)

        @app.get("/divide")
        def divide(logger: Logger = Depends(get_request_logger)):
            try:
                1 / 0
            except ZeroDivisionError:
                logger.exception("division failed")
            return "ok"

        response = TestClient(app).get("/divide")

        assert response.status_code == 200
        assert len(events) == 1
        assert events[0]["status"] == 200
        assert events[0]["error"] == "ZeroDivisionError"
        assert events[0]["message"] == "division failed\n"

    def test_failing_rule_propagates(self, make_app, capture_logger, events):
        def broken(request):
            raise LookupError("no such header")

        app = make_app(target=capture_logger, request_fields={"broken": broken})

        with pytest.raises(LookupError, match="no such header"):
            TestClient(app).get("/")

        assert events[0]["error"] == "LookupError"


def test_sets_scope_keys(capture_logger):
    seen = {}

    app = FastAPI()
    app.add_middleware(BufferedLoggingMiddleware, logger=capture_logger)

    @app.get("/scope")
    def scope_view(request: Request):
        seen[LOGGER_KEY] = request.scope.get(LOGGER_KEY)
        seen[SILENCE_KEY] = request.scope.get(SILENCE_KEY)
        return "ok"

    TestClient(app).get("/scope")

    assert seen[LOGGER_KEY] is capture_logger
    assert seen[SILENCE_KEY] is True


def test_each_request_gets_a_fresh_buffer(capture_logger, events):
    app = FastAPI()
    app.add_middleware(BufferedLoggingMiddleware, logger=capture_logger)

    @app.get("/item/{name}")
    async def item(name: str, request: Request):
        request.scope[LOGGER_KEY].info(name)
        return "ok"

    client = TestClient(app)
    client.get("/item/a")
    client.get("/item/b")

    assert [e["message"] for e in events] == ["a\n", "b\n"]
    assert capture_logger.buffer is None


def test_background_task_logs_are_emitted(capture_logger, events):
    app = FastAPI()
    app.add_middleware(BufferedLoggingMiddleware, logger=capture_logger)

    @app.get("/later")
    def later(background_tasks: BackgroundTasks, logger: Logger = Depends(get_request_logger)):
        logger.info("in request")
        background_tasks.add_task(logger.info, "from background")
        return "ok"

    TestClient(app).get("/later")

    by_message = {e["message"]: e for e in events}
    assert sorted(by_message) == ["from background\n", "in request\n"]
    assert by_message["in request\n"]["status"] == 200
    # emitted on its own, outside of the request's event
    assert "status" not in by_message["from background\n"]
