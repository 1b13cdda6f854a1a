"""WebSocket endpoint protocol tests."""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from tests.conftest import auth_headers
from trivia.main import create_app


def _token(user_id: str) -> str:
    return auth_headers(user_id)["Authorization"].removeprefix("Bearer ")


@pytest.fixture
def ws_client() -> TestClient:
    return TestClient(create_app())


class TestWebSocketEndpoint:
    def test_bad_token_closed_with_4001(self, ws_client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with ws_client.websocket_connect("/ws?token=garbage") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4001

    def test_ping_pong(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(f"/ws?token={_token('ws-user-1')}") as ws:
            ws.send_json({"action": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_subscribe_and_unsubscribe(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(f"/ws?token={_token('ws-user-2')}") as ws:
            ws.send_json({"action": "subscribe", "channel": "activities"})
            assert ws.receive_json() == {"type": "subscribed", "channel": "activities"}

            ws.send_json({"action": "subscribe", "channel": "weather"})
            assert ws.receive_json() == {"type": "error", "message": "Invalid channel: weather"}

            ws.send_json({"action": "unsubscribe", "channel": "activities"})
            assert ws.receive_json() == {"type": "unsubscribed", "channel": "activities"}

    def test_malformed_messages(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(f"/ws?token={_token('ws-user-3')}") as ws:
            ws.send_text("not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}

            ws.send_text("[1, 2]")
            assert ws.receive_json() == {"type": "error", "message": "Expected a JSON object"}

            ws.send_json({"action": "dance"})
            assert ws.receive_json() == {"type": "error", "message": "Unknown action: dance"}
