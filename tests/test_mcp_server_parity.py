import io
import json
from urllib.parse import parse_qs, urlsplit

from core.desktop.things.interface.mcp_server import run_stdio
from conftest import RecordingGateway


def _session(*messages, gateway=None):
    lines = [m if isinstance(m, str) else json.dumps(m) for m in messages]
    stdin = io.StringIO("\n".join(lines) + "\n")
    stdout = io.StringIO()
    assert run_stdio(gateway=gateway or RecordingGateway(), stdin=stdin, stdout=stdout) == 0
    return [json.loads(line) for line in stdout.getvalue().splitlines()]


_HANDSHAKE = (
    {"jsonrpc": "2.0", "id": 1, "method": "initialize", "params": {}},
    {"jsonrpc": "2.0", "method": "notifications/initialized"},
)


def test_stdio_handshake_and_list():
    out = _session(*_HANDSHAKE, {"jsonrpc": "2.0", "id": 2, "method": "tools/list"})
    # the notification produces no line
    assert [r["id"] for r in out] == [1, 2]
    names = {t["name"] for t in out[1]["result"]["tools"]}
    assert {"add-todo", "restructure-project", "evaluate", "json"} <= names


def test_stdio_malformed_lines():
    out = _session("{not json", json.dumps(["a"]), json.dumps({"id": 7, "jsonrpc": "2.0"}), "   ")
    assert [r["error"]["code"] for r in out] == [-32700, -32600, -32600]
    assert out[0]["id"] is None
    assert out[2]["id"] == 7


def test_stdio_restructure_round_trip(monkeypatch):
    monkeypatch.setenv("THINGS_AUTH_TOKEN", "tok")
    gateway = RecordingGateway()
    call = {
        "jsonrpc": "2.0",
        "id": 3,
        "method": "tools/call",
        "params": {
            "name": "restructure-project",
            "arguments": {
                "project-id": "P1",
                "layout": [
                    {"type": "heading", "title": "Plan", "items": ["T1"]},
                    {"type": "unsectioned", "items": ["T2"]},
                ],
            },
        },
    }
    out = _session(*_HANDSHAKE, call, gateway=gateway)

    result = out[1]["result"]
    assert result["isError"] is False
    text = result["content"][0]["text"]
    assert text.startswith("Project P1 restructured successfully in Things\nNew headings:\n• Plan → ")

    (url,) = gateway.urls
    parts = urlsplit(url)
    assert parts.scheme == "things" and parts.path == "/json"
    query = parse_qs(parts.query)
    assert query["auth-token"] == ["tok"]
    ops = json.loads(query["data"][0])
    assert [op["type"] for op in ops] == ["heading", "to-do", "to-do"]
    heading_id = ops[0]["id"]
    assert ops[0]["attributes"] == {"title": "Plan", "project-id": "P1", "index": 0}
    assert ops[1]["attributes"] == {"list-id": "P1", "heading-id": heading_id, "index": 0}
    assert ops[2]["attributes"] == {"list-id": "P1", "index": 1}


def test_stdio_tool_error_stays_in_band():
    out = _session(
        *_HANDSHAKE,
        {
            "jsonrpc": "2.0",
            "id": 4,
            "method": "tools/call",
            "params": {"name": "update", "arguments": {"id": "T1", "title": "x"}},
        },
    )
    assert "error" not in out[1]
    assert out[1]["result"]["isError"] is True


def _tools_call(id, name, arguments=None):
    return {"jsonrpc": "2.0", "id": id, "method": "tools/call", "params": {"name": name, "arguments": arguments or {}}}


def test_stdio_survives_null_byte_target(monkeypatch, tmp_path):
    from infrastructure import evaluate_runner
    from infrastructure.evaluate_runner import EvaluateRunner
    from infrastructure.things_gateway import SubprocessThingsGateway

    def fake_run(cmd, **kwargs):
        raise ValueError("embedded null byte")

    monkeypatch.setattr(evaluate_runner.subprocess, "run", fake_run)
    gateway = SubprocessThingsGateway(evaluator=EvaluateRunner(tmp_path / "osascript", tmp_path / "eval.jxa"))
    out = _session(
        *_HANDSHAKE,
        _tools_call(5, "evaluate", {"id": "a\u0000b"}),
        {"jsonrpc": "2.0", "id": 6, "method": "ping"},
        gateway=gateway,
    )

    assert [r["id"] for r in out] == [1, 5, 6]
    assert out[1]["result"]["isError"] is True
    assert "embedded null byte" in out[1]["result"]["content"][0]["text"]
    assert out[2]["result"] == {}


def test_stdio_survives_unexpected_gateway_error():
    class BrokenGateway(RecordingGateway):
        def open_url(self, url):
            raise KeyError("boom")

    out = _session(
        *_HANDSHAKE,
        _tools_call(7, "version"),
        {"jsonrpc": "2.0", "id": 8, "method": "ping"},
        gateway=BrokenGateway(),
    )

    assert out[1]["result"]["isError"] is True
    assert out[1]["result"]["content"][0]["text"].startswith("internal error: ")
    assert out[2]["result"] == {}


def test_stdio_non_string_tool_name():
    out = _session(
        *_HANDSHAKE,
        {"jsonrpc": "2.0", "id": 9, "method": "tools/call", "params": {"name": ["x"]}},
        {"jsonrpc": "2.0", "id": 10, "method": "ping"},
    )

    assert out[1]["id"] == 9
    assert out[1]["error"]["code"] == -32602
    assert out[2]["result"] == {}


def test_stdio_notifications_get_no_reply():
    out = _session(
        {"jsonrpc": "2.0", "method": "tools/list"},
        *_HANDSHAKE,
        {"jsonrpc": "2.0", "method": "notifications/cancelled", "params": {"requestId": 1}},
        {"jsonrpc": "2.0", "id": 2, "method": "ping"},
    )
    assert [r["id"] for r in out] == [1, 2]
