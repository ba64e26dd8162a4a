"""WebSocket round trips through ``TestClient`` (zero relay delays)."""

from __future__ import annotations


def _conversation(client) -> str:
    return client.post("/api/conversations", json={"userId": "u1"}).json()["id"]


class TestRelaySocket:
    def test_send_message_flow(self, client):
        conversation_id = _conversation(client)

        with client.websocket_connect("/ws") as ws:
            ws.send_json(
                {"type": "join_conversation", "data": {"conversationId": conversation_id}}
            )
            ws.send_json(
                {
                    "type": "send_message",
                    "conversationId": conversation_id,
                    "data": {"senderId": "u1", "senderType": "user", "content": "Oi"},
                }
            )

            echo = ws.receive_json()
            typing_on = ws.receive_json()
            typing_off = ws.receive_json()
            reply = ws.receive_json()

        assert echo["type"] == "new_message"
        assert echo["data"]["content"] == "Oi"
        assert typing_on == {
            "type": "user_typing",
            "data": {"isTyping": True, "senderType": "agent"},
            "conversationId": conversation_id,
        }
        assert typing_off["data"]["isTyping"] is False
        assert reply["type"] == "new_message"
        assert reply["data"]["content"] == "Resposta do agente"

        messages = client.get(f"/api/conversations/{conversation_id}/messages").json()
        assert [m["senderType"] for m in messages] == ["user", "agent"]

    def test_backend_failure_still_replies(self, client, backend):
        backend.fail("POST", "/api/chat", 500)
        conversation_id = _conversation(client)

        with client.websocket_connect("/ws") as ws:
            ws.send_json(
                {"type": "join_conversation", "data": {"conversationId": conversation_id}}
            )
            ws.send_json(
                {
                    "type": "send_message",
                    "conversationId": conversation_id,
                    "data": {"senderType": "user", "content": "Oi, bom dia"},
                }
            )
            frames = [ws.receive_json() for _ in range(4)]

        assert frames[-1]["data"]["content"].startswith("Olá! Bem-vindo")

    def test_malformed_envelope_gets_error(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_text("not json at all")
            error = ws.receive_json()

            # The connection stays usable after an error.
            ws.send_json({"type": "bogus", "data": {}})
            second = ws.receive_json()

        assert error["type"] == "error"
        assert error["data"]["code"] == "VALIDATION_FAILED"
        assert second["type"] == "error"

    def test_agent_call_is_relayed(self, client):
        conversation_id = _conversation(client)

        with client.websocket_connect("/ws") as ws:
            ws.send_json(
                {"type": "join_conversation", "data": {"conversationId": conversation_id}}
            )
            # The error reply proves the join was handled before the HTTP call.
            ws.send_json({"type": "bogus", "data": {}})
            assert ws.receive_json()["type"] == "error"

            client.post(
                "/api/agent/call", json={"conversationId": conversation_id, "message": "Oi"}
            )
            relayed = ws.receive_json()

        assert relayed["type"] == "new_message"
        assert relayed["data"]["senderType"] == "agent"
