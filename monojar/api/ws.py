from fastapi import APIRouter, WebSocket, WebSocketDisconnect

"""
API Realtime (WebSocket).

Rôle (fonctionnel) :
- Canal de push vers l’overlay : le serveur n’envoie que des messages
  {"type": "new_donation", "data": ...} (via Broadcaster.broadcast_donation).
- Les messages éventuellement envoyés par le client sont lus et ignorés
  (la lecture sert à détecter la déconnexion).
"""

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/donations")
async def ws_donations(ws: WebSocket):
    broadcaster = getattr(ws.app.state, "broadcaster", None)
    if broadcaster is None:
        await ws.close(code=1011)
        return

    await broadcaster.connect(ws)

    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        await broadcaster.disconnect(ws)
    except Exception:
        # On nettoie la connexion même en cas d’erreur inattendue
        await broadcaster.disconnect(ws)
