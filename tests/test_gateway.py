import unittest

from fastapi.testclient import TestClient

from chesspartner.board import ChessBoard
from chesspartner.config import Config, GameConfig, PersonaConfig
from chesspartner.game import TurnOrchestrator
from chesspartner.pipeline import RecommendationPipeline
from chesspartner.players.llm import LLMOpponent
from chesspartner.providers.base import LLMProvider, Message
from chesspartner.session import SessionManager
from chesspartner.store import InMemorySessionStore
from chesspartner.web.app import Gateway, create_app

_REPLY = '{"analysis": "Hold the center.", "recommendedMove": "e5"}'


class _FixedProvider(LLMProvider):
    def __init__(self, reply: str) -> None:
        self.reply = reply

    async def complete(self, messages: list[Message], *, max_tokens: int = 500) -> str:
        return self.reply


def _wiring(reply: str = _REPLY) -> tuple[TurnOrchestrator, LLMOpponent]:
    pipeline = RecommendationPipeline(_FixedProvider(reply), persona_name="Tester")
    orchestrator = TurnOrchestrator(SessionManager(InMemorySessionStore(), pipeline, hint_count=3))
    return orchestrator, LLMOpponent("Tester", pipeline)


def _client(reply: str = _REPLY) -> TestClient:
    orchestrator, opponent = _wiring(reply)
    config = Config(
        game=GameConfig(hint_count=3),
        personas={"tester": PersonaConfig(key="tester", name="Tester", provider="fake", model="m")},
        providers={},
        opponent="tester",
    )
    return TestClient(create_app(orchestrator, opponent, config))


class WebSocketGatewayTests(unittest.TestCase):
    def test_new_game_returns_state_and_echoes_request_id(self) -> None:
        with _client() as client, client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "new", "gameId": "g1", "requestId": "r-1"})
            event = ws.receive_json()
        self.assertEqual(event["type"], "state")
        self.assertEqual(event["requestId"], "r-1")
        self.assertEqual(event["state"]["status"], "ongoing")
        self.assertEqual(len(event["state"]["legalMoves"]), 20)
        self.assertEqual(event["state"]["moveRecord"], [])

    def test_move_gets_opponent_reply(self) -> None:
        with _client() as client, client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "new", "gameId": "g1"})
            ws.receive_json()
            ws.send_json({"type": "move", "gameId": "g1", "move": "e2e4"})
            event = ws.receive_json()
        self.assertEqual(event["type"], "move")
        self.assertEqual(event["playerMove"], "e4")
        self.assertEqual(event["move"], "e5")
        self.assertEqual(event["commentary"], "Hold the center.")
        self.assertEqual(event["state"]["moveRecord"], ["e4", "e5"])
        self.assertEqual(event["state"]["turn"], "white")
        self.assertNotIn("requestId", event)

    def test_errors_keep_the_socket_open(self) -> None:
        with _client() as client, client.websocket_connect("/ws/game") as ws:
            ws.send_text("{not json")
            malformed = ws.receive_json()
            ws.send_json({"type": "move", "gameId": "missing", "move": "e4"})
            missing = ws.receive_json()
            ws.send_json({"type": "new", "gameId": "g1"})
            ws.receive_json()
            ws.send_json({"type": "move", "gameId": "g1", "move": "e5", "requestId": 7})
            illegal = ws.receive_json()
            ws.send_json({"type": "teleport", "gameId": "g1"})
            unknown = ws.receive_json()
            ws.send_json({"type": "hint", "gameId": "g1"})
            hint = ws.receive_json()

        self.assertEqual(malformed["error"], "invalid_command")
        self.assertEqual(missing["error"], "session_not_found")
        self.assertEqual(illegal["error"], "illegal_move")
        self.assertEqual(illegal["requestId"], 7)
        self.assertEqual(unknown["error"], "invalid_command")
        self.assertEqual(hint["type"], "message")

    def test_read_only_messages(self) -> None:
        with _client() as client, client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "new", "gameId": "g1"})
            ws.receive_json()
            ws.send_json({"type": "hint", "gameId": "g1"})
            hint = ws.receive_json()
            ws.send_json({"type": "analyze", "gameId": "g1"})
            analysis = ws.receive_json()
            ws.send_json({"type": "chat", "gameId": "g1", "question": "Plans?"})
            chat = ws.receive_json()

        self.assertEqual(hint["kind"], "hint")
        self.assertEqual(len(hint["hints"]), 3)
        self.assertTrue(hint["text"].startswith("- "))
        self.assertEqual(analysis["kind"], "analysis")
        self.assertIn("Hold the center.", analysis["text"])
        self.assertEqual(chat["kind"], "chat")
        self.assertEqual(chat["text"], _REPLY)

    def test_hint_for_position_without_session(self) -> None:
        with _client() as client, client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "hint", "gameId": "scratch", "position": "4k3/8/8/8/8/8/8/4K3 w - - 0 1"})
            event = ws.receive_json()
        self.assertEqual(event["type"], "message")
        self.assertTrue(all("KING" in label for label in event["hints"]))

    def test_game_over_on_mating_move(self) -> None:
        fen = ChessBoard.replay(ChessBoard().fen, ["f3", "e5", "g4"]).fen
        with _client() as client, client.websocket_connect("/ws/game") as ws:
            ws.send_json({"type": "new", "gameId": "g1", "position": fen})
            ws.receive_json()
            ws.send_json({"type": "move", "gameId": "g1", "move": "Qh4#"})
            event = ws.receive_json()
            ws.send_json({"type": "move", "gameId": "g1", "move": "a3"})
            after = ws.receive_json()

        self.assertEqual(event["type"], "game_over")
        self.assertEqual(event["status"], "checkmate")
        self.assertEqual(event["result"], "0-1")
        self.assertEqual(event["winner"], "Human")
        self.assertIsNone(event["move"])
        self.assertEqual(event["state"]["legalMoves"], [])
        self.assertIn("Qh4#", event["pgn"])
        self.assertEqual(after["error"], "game_finished")


class RestGatewayTests(unittest.TestCase):
    def test_commands_endpoint_maps_errors_to_status_codes(self) -> None:
        with _client() as client:
            self.assertEqual(client.post("/api/commands", json={"type": "new", "gameId": "g1"}).status_code, 200)
            self.assertEqual(client.post("/api/commands", json={"type": "bogus"}).status_code, 400)
            self.assertEqual(
                client.post("/api/commands", json={"type": "move", "gameId": "nope", "move": "e4"}).status_code,
                404,
            )
            illegal = client.post("/api/commands", json={"type": "move", "gameId": "g1", "move": "Ke2"})
        self.assertEqual(illegal.status_code, 409)
        self.assertEqual(illegal.json()["error"], "illegal_move")

    def test_game_state_and_board(self) -> None:
        with _client() as client:
            client.post("/api/commands", json={"type": "new", "gameId": "g1"})
            client.post("/api/commands", json={"type": "move", "gameId": "g1", "move": "d4"})
            state = client.get("/api/games/g1")
            board = client.get("/api/games/g1/board.svg")
            missing = client.get("/api/games/nope")
        self.assertEqual(state.status_code, 200)
        self.assertEqual(state.json()["moveRecord"], ["d4", "e5"])
        self.assertEqual(board.status_code, 200)
        self.assertTrue(board.headers["content-type"].startswith("image/svg+xml"))
        self.assertIn("<svg", board.text)
        self.assertEqual(missing.status_code, 404)

    def test_config_endpoint(self) -> None:
        with _client() as client:
            body = client.get("/api/config").json()
        self.assertEqual(body["opponent"]["name"], "Tester")
        self.assertEqual(body["hintCount"], 3)
        self.assertEqual(body["repetitionWindow"], 6)


class GatewayHandleTests(unittest.IsolatedAsyncioTestCase):
    async def test_non_object_payload_is_an_error_event(self) -> None:
        orchestrator, opponent = _wiring()
        gateway = Gateway(orchestrator, opponent)
        event = await gateway.handle(["new"])
        self.assertEqual(event["type"], "error")
        self.assertEqual(event["error"], "invalid_command")

    async def test_every_reply_is_a_single_known_event(self) -> None:
        orchestrator, opponent = _wiring()
        gateway = Gateway(orchestrator, opponent)
        payloads = [
            {"type": "new", "gameId": "g1"},
            {"type": "move", "gameId": "g1", "move": "Nf3"},
            {"type": "analyze", "gameId": "g1"},
            {"type": "chat", "gameId": "g1", "question": "?"},
            {"type": "hint", "gameId": "g1"},
            {"type": "move", "gameId": "g1", "move": "Qxf7"},
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                event = await gateway.handle(payload)
                self.assertIn(event["type"], {"state", "move", "message", "game_over", "error"})
                self.assertEqual(event["gameId"], "g1")


if __name__ == "__main__":
    unittest.main()
