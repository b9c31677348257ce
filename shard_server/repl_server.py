"""
Simple TCP REPL server for the shard console.

Protocol: JSON per line over TCP.
- Request: {"cmd": "line", "text": "int x = 5;"}
- Response: {"ok": true, "output": <console text>, "prompt": ">>>" or "..."}
- Request: {"cmd": "complete", "text": "$x.bit"}
- Response: {"ok": true, "text": <completed input>, "output": <console text>}
- Failure: {"ok": false, "error": <message>}

All clients share one Interpreter, so variables, macros and functions persist
across requests and connections. Requests are handled one at a time.
"""

from __future__ import annotations

import json
import logging
import socket
import threading
from typing import Any, Tuple

from shard.console import BufferConsole
from shard.interpreter import Interpreter

logger = logging.getLogger(__name__)

HOST = "127.0.0.1"
PORT = 8765


class ReplServer:
    def __init__(self, host: str = HOST, port: int = PORT, interp: Interpreter | None = None):
        self.host = host
        self.port = port
        # Keep a single interpreter to maintain session state
        self.console = BufferConsole()
        self.interp = interp or Interpreter(self.console)
        if interp is not None:
            self.console = interp.console
        self._lock = threading.Lock()

    def handle_request(self, req: Any) -> dict[str, Any]:
        if not isinstance(req, dict):
            return {"ok": False, "error": "Invalid request: expected a JSON object"}
        cmd = req.get("cmd")
        text = req.get("text", "")
        if not isinstance(text, str):
            return {"ok": False, "error": "Invalid request: 'text' must be a string"}
        with self._lock:
            self.console.clear()
            if cmd == "line":
                self.interp.process_line(text)
                return {"ok": True, "output": self.console.clear(), "prompt": self.interp.prompt}
            if cmd == "complete":
                completed = self.interp.complete(text)
                return {"ok": True, "text": completed, "output": self.console.clear()}
        return {"ok": False, "error": f"Unknown cmd: {cmd}"}

    def serve_forever(self):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((self.host, self.port))
            s.listen(5)
            logger.info("listening on %s:%d", self.host, self.port)
            while True:
                conn, addr = s.accept()
                threading.Thread(target=self._handle_client, args=(conn, addr), daemon=True).start()

    def _handle_client(self, conn: socket.socket, addr: Tuple[str, int]):
        with conn:
            buf = b""
            while True:
                data = conn.recv(4096)
                if not data:
                    break
                buf += data
                while b"\n" in buf:
                    line, buf = buf.split(b"\n", 1)
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        req = json.loads(line.decode("utf-8"))
                    except ValueError as ex:
                        resp = {"ok": False, "error": f"Invalid request: {ex}"}
                    else:
                        resp = self.handle_request(req)
                    conn.sendall((json.dumps(resp) + "\n").encode("utf-8"))


if __name__ == "__main__":
    ReplServer().serve_forever()
