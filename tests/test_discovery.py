"""
Tests for action discovery and route naming.
"""
import pytest
from pydantic import ValidationError

from orbit.actions.discovery import JSON, STREAM, discover
from orbit.actions.naming import method_name, resource_name, snake, strip_suffix
from orbit.core.config import DEFAULT_SUFFIXES, Options
from orbit.core.errors import ActionSignatureError, ServiceNameError
from sample_services import (
    DemoService,
    DictResultService,
    EmptyRequest,
    FileService,
    LooseService,
    PingHandler,
    Recorder,
    WidgetService,
    SumRequest,
    SumResponse,
)


class TestSnake:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("GetOrder", "get_order"),
            ("getHTTPResponse", "get_http_response"),
            ("HTTPStatus", "http_status"),
            ("sum", "sum"),
            ("slow_sync", "slow_sync"),
            ("order-items", "order_items"),
        ],
    )
    def test_converts_to_snake_case(self, name, expected):
        assert snake(name) == expected

    @pytest.mark.parametrize("name", ["GetOrder", "getHTTPResponse", "already_snake", "V2Items"])
    def test_is_idempotent(self, name):
        assert snake(snake(name)) == snake(name)

    def test_method_name(self):
        assert method_name("FailKnown") == "fail_known"


class TestResourceName:
    def test_strips_suffix(self):
        assert resource_name("DemoService", DEFAULT_SUFFIXES) == "demo"

    def test_suffix_is_case_insensitive(self):
        assert resource_name("AuditUseCase", DEFAULT_SUFFIXES) == "audit"
        assert resource_name("Ping_HANDLER", DEFAULT_SUFFIXES) == "ping"

    def test_name_is_lowercased_before_stripping(self):
        assert resource_name("UserProfileService", DEFAULT_SUFFIXES) == "userprofile"

    def test_only_the_trailing_suffix_is_stripped(self):
        assert resource_name("ServiceLogService", DEFAULT_SUFFIXES) == "servicelog"

    def test_first_matching_suffix_wins(self):
        assert strip_suffix("ReportHandlerService", ["handlerservice", "service"]) == "report"
        assert strip_suffix("ReportHandlerService", ["service", "handlerservice"]) == "reporthandler"

    def test_missing_suffix_is_rejected(self):
        with pytest.raises(ServiceNameError):
            resource_name("Demo", DEFAULT_SUFFIXES)

    def test_empty_name_is_rejected(self):
        with pytest.raises(ServiceNameError):
            resource_name("Service", DEFAULT_SUFFIXES)

    def test_empty_name_allowed_when_requested(self):
        assert resource_name("Service", DEFAULT_SUFFIXES, allow_empty=True) == ""


class TestDiscover:
    def _demo(self):
        return DemoService(Recorder(), Options())

    def test_finds_actions_in_name_order(self):
        actions = discover(self._demo(), DEFAULT_SUFFIXES)
        assert [a.method for a in actions] == [
            "crash",
            "echo",
            "expire",
            "fail_known",
            "lookup",
            "slow",
            "slow_sync",
            "sum",
        ]

    def test_action_metadata(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["sum"]
        assert action.resource == "demo"
        assert action.request_type is SumRequest
        assert action.response_type is SumResponse
        assert action.kind == JSON
        assert action.qualname == "DemoService.sum"
        assert not action.is_async
        assert not action.anonymous
        assert not action.omitted

    def test_optional_result_unwraps(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["lookup"]
        assert action.response_type is SumResponse

    def test_async_methods_are_marked(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["slow"]
        assert action.is_async

    def test_stream_result(self):
        (action,) = discover(FileService(), DEFAULT_SUFFIXES)
        assert action.kind == STREAM
        assert action.response_adapter is None

    def test_stream_action_has_no_json_form(self):
        (action,) = discover(FileService(), DEFAULT_SUFFIXES)
        with pytest.raises(TypeError):
            action.dump(object())

    def test_capability_flags(self):
        (action,) = discover(PingHandler(), DEFAULT_SUFFIXES)
        assert action.anonymous
        assert action.omitted
        assert action.method == "ping"

    def test_bind_builds_fresh_payloads(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["sum"]
        first = action.bind(b'{"x": 1, "y": 2}')
        second = action.bind(b'{"x": 1, "y": 2}')
        assert first == SumRequest(1, 2)
        assert first is not second

    def test_bind_is_strict(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["sum"]
        with pytest.raises(ValidationError):
            action.bind(b'{"x": "1", "y": 2}')
        with pytest.raises(ValidationError):
            action.bind(b'{"x": true, "y": 2}')

    def test_bind_empty_body(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["echo"]
        assert action.bind(b"  ") == EmptyRequest()

    def test_dump(self):
        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["sum"]
        assert action.dump(SumResponse(sum=3)) == {"sum": 3}

    def test_request_without_validate_is_fatal_when_strict(self):
        with pytest.raises(ActionSignatureError):
            discover(LooseService(), DEFAULT_SUFFIXES)

    def test_request_without_validate_is_skipped_when_lenient(self):
        actions = discover(LooseService(), DEFAULT_SUFFIXES, strict=False)
        assert [a.method for a in actions] == ["sum"]

    def test_value_result_is_rejected(self):
        with pytest.raises(ActionSignatureError):
            discover(DictResultService(), DEFAULT_SUFFIXES)

    def test_unserializable_result_is_rejected(self):
        with pytest.raises(ActionSignatureError):
            discover(WidgetService(), DEFAULT_SUFFIXES)

    def test_custom_suffixes(self):
        with pytest.raises(ServiceNameError):
            discover(self._demo(), ["controller"])


class TestInvoke:
    @pytest.mark.asyncio
    async def test_sync_action_runs_in_thread(self):
        from orbit.core.context import Context

        action = {a.method: a for a in discover(self._demo(), DEFAULT_SUFFIXES)}["sum"]
        result = await action.invoke(Context.background(), SumRequest(2, 3))
        assert result == SumResponse(sum=5)

    def _demo(self):
        return DemoService(Recorder(), Options())
