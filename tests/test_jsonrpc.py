"""Tests for the JSON-RPC 2.0 wire models."""

import pytest
from rpcdispatch.jsonrpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    MISSING,
    PARSE_ERROR,
    JsonRpcError,
    JsonRpcRequest,
    JsonRpcResponse,
    RpcError,
    ServerError,
    parse_request,
)


class TestJsonRpcRequest:
    def test_to_dict(self):
        req = JsonRpcRequest(method="Add", params=[1, 2], id="abc")
        assert req.to_dict() == {"jsonrpc": "2.0", "method": "Add", "params": [1, 2], "id": "abc"}

    def test_to_dict_omits_missing_members(self):
        d = JsonRpcRequest(method="Ping").to_dict()
        assert "params" not in d
        assert "id" not in d

    def test_from_dict_valid(self):
        raw = {"jsonrpc": "2.0", "method": "test", "params": [1], "id": 1}
        req = JsonRpcRequest.from_dict(raw)
        assert req.method == "test"
        assert req.params == [1]
        assert req.id == 1
        assert not req.is_notification

    def test_from_dict_absent_id_is_notification(self):
        req = JsonRpcRequest.from_dict({"jsonrpc": "2.0", "method": "test"})
        assert req.id is MISSING
        assert req.params is MISSING
        assert req.is_notification

    def test_from_dict_null_id_is_notification(self):
        req = JsonRpcRequest.from_dict({"jsonrpc": "2.0", "method": "test", "id": None})
        assert req.id is None
        assert req.is_notification

    def test_from_dict_version_not_enforced(self):
        req = JsonRpcRequest.from_dict({"jsonrpc": "1.0", "method": "test", "id": 1})
        assert req.jsonrpc == "1.0"

    def test_from_dict_missing_method_is_empty(self):
        req = JsonRpcRequest.from_dict({"username": "admin", "password": "admin"})
        assert req.method == ""

    def test_from_dict_non_string_method(self):
        with pytest.raises(ValueError, match="method"):
            JsonRpcRequest.from_dict({"jsonrpc": "2.0", "method": 1})

    def test_from_dict_non_string_version(self):
        with pytest.raises(ValueError, match="jsonrpc"):
            JsonRpcRequest.from_dict({"jsonrpc": 2, "method": "t"})

    @pytest.mark.parametrize("bad_id", [True, [1], {"a": 1}])
    def test_from_dict_bad_id(self, bad_id):
        with pytest.raises(ValueError, match="id"):
            JsonRpcRequest.from_dict({"jsonrpc": "2.0", "method": "t", "id": bad_id})

    def test_from_dict_not_dict(self):
        with pytest.raises(ValueError, match="JSON object"):
            JsonRpcRequest.from_dict("hello")


class TestJsonRpcResponse:
    def test_success(self):
        d = JsonRpcResponse.success(1, {"value": 42}).to_dict()
        assert d == {"jsonrpc": "2.0", "result": {"value": 42}, "id": 1}

    def test_success_without_result(self):
        d = JsonRpcResponse.success("x").to_dict()
        assert d == {"jsonrpc": "2.0", "id": "x"}

    def test_null_result_is_kept(self):
        d = JsonRpcResponse.success(1, None).to_dict()
        assert d["result"] is None

    def test_fail(self):
        d = JsonRpcResponse.fail("2", JsonRpcError.of(METHOD_NOT_FOUND)).to_dict()
        assert d["id"] == "2"
        assert d["error"] == {"code": METHOD_NOT_FOUND, "message": "Method not found"}
        assert "result" not in d

    def test_missing_id_renders_null(self):
        d = JsonRpcResponse.fail(MISSING, JsonRpcError.of(PARSE_ERROR)).to_dict()
        assert d["id"] is None


class TestJsonRpcError:
    def test_to_dict_without_data(self):
        err = JsonRpcError(code=INTERNAL_ERROR, message="oops")
        assert err.to_dict() == {"code": INTERNAL_ERROR, "message": "oops"}

    def test_to_dict_with_data(self):
        err = JsonRpcError(code=INVALID_PARAMS, message="bad", data={"position": 0})
        assert err.to_dict()["data"] == {"position": 0}

    def test_cause_is_not_serialised(self):
        err = JsonRpcError.of(INTERNAL_ERROR, cause=RuntimeError("secret"))
        assert err.to_dict() == {"code": INTERNAL_ERROR, "message": "Internal error"}
        assert isinstance(err.cause, RuntimeError)

    def test_server_error(self):
        err = ServerError(-32001, "divide by zero").to_error()
        assert err.to_dict() == {"code": -32001, "message": "Server error", "data": "divide by zero"}


class TestParseRequest:
    @pytest.mark.parametrize(
        "payload",
        [b"{", b"not json", b'{"method": "x", "params": [5, \'\']}', b'{"a": NaN}', b"\x80\x81"],
    )
    def test_syntax_errors(self, payload):
        with pytest.raises(RpcError) as exc_info:
            parse_request(payload)
        assert exc_info.value.code == PARSE_ERROR
        assert exc_info.value.error.cause is not None

    @pytest.mark.parametrize("payload", [b"42", b'"hello"', b"null", b'{"method": 5}'])
    def test_shape_errors(self, payload):
        with pytest.raises(RpcError) as exc_info:
            parse_request(payload)
        assert exc_info.value.code == INVALID_REQUEST

    def test_deep_nesting_is_syntax_error(self):
        payload = "[" * 100_000 + "]" * 100_000
        with pytest.raises(RpcError) as exc_info:
            parse_request(payload)
        assert exc_info.value.code == PARSE_ERROR

    def test_valid(self):
        req = parse_request('{"jsonrpc": "2.0", "method": "Add", "params": [1, 2], "id": "a"}')
        assert req == JsonRpcRequest(method="Add", params=[1, 2], id="a")


class TestErrorCodes:
    def test_standard_codes(self):
        assert PARSE_ERROR == -32700
        assert INVALID_REQUEST == -32600
        assert METHOD_NOT_FOUND == -32601
        assert INVALID_PARAMS == -32602
        assert INTERNAL_ERROR == -32603
