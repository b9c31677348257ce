import json
import socket
import threading

import pytest

from shard_server.repl_server import ReplServer


@pytest.fixture
def server():
    return ReplServer()


def test_line_requests_share_one_session(server):
    assert server.handle_request({"cmd": "line", "text": "int x = 5;"}) == {"ok": True, "output": "", "prompt": ">>>"}
    resp = server.handle_request({"cmd": "line", "text": "$x + 1"})
    assert resp == {"ok": True, "output": "(int) 6\n", "prompt": ">>>"}


def test_open_block_changes_prompt(server):
    resp = server.handle_request({"cmd": "line", "text": "if (true) {"})
    assert resp["prompt"] == "..."
    resp = server.handle_request({"cmd": "line", "text": 'Print("done"); }'})
    assert resp == {"ok": True, "output": "done\n", "prompt": ">>>"}


def test_complete_request(server):
    server.handle_request({"cmd": "line", "text": '"hello"'})
    resp = server.handle_request({"cmd": "complete", "text": "$_.capi"})
    assert resp["ok"] and resp["text"] == "$_.capitalize"
    assert "capitalize" in resp["output"]


@pytest.mark.parametrize(
    "req,error",
    [
        ({"cmd": "nope"}, "Unknown cmd: nope"),
        ([1, 2], "Invalid request: expected a JSON object"),
        ({"cmd": "line", "text": 3}, "Invalid request: 'text' must be a string"),
    ],
)
def test_bad_requests(server, req, error):
    assert server.handle_request(req) == {"ok": False, "error": error}


def test_client_connection(server):
    ours, theirs = socket.socketpair()
    worker = threading.Thread(target=server._handle_client, args=(theirs, ("local", 0)), daemon=True)
    worker.start()
    ours.sendall(b'{"cmd": "line", "text": "2+2"}\n\nnot json\n')
    ours.shutdown(socket.SHUT_WR)
    received = b""
    while True:
        chunk = ours.recv(4096)
        if not chunk:
            break
        received += chunk
    ours.close()
    worker.join(timeout=5)

    first, second = [json.loads(line) for line in received.decode("utf-8").splitlines()]
    assert first == {"ok": True, "output": "(int) 4\n", "prompt": ">>>"}
    assert second["ok"] is False and second["error"].startswith("Invalid request:")
