"""
Entry point for the ChessPartner WebSocket/REST server.

    python web_main.py            ← serves on :8000, reloads on code changes

Clients connect to ws://localhost:8000/ws/game (see chesspartner/web/app.py
for the event format).
"""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "chesspartner.web.app:build_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
