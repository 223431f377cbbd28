from __future__ import annotations
import asyncio
import json
import logging
from dataclasses import asdict
from typing import List, Literal, Optional, Set

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from pushup_alarm.common import config
from pushup_alarm.common.events import trace
from pushup_alarm.counter.session import AlarmSessionManager
from pushup_alarm.data import db

logger = logging.getLogger(__name__)

app = FastAPI(title="pushup-alarm")


class StartArgs(BaseModel):
    target_count: int = Field(config.DEFAULT_TARGET, ge=config.MIN_TARGET, le=config.MAX_TARGET,
                              description="Pushups needed to dismiss the alarm")
    mode: Literal["pose", "motion", "threshold", "camera"] = Field("pose", description="Signal source")
    alarm_name: Optional[str] = Field(None, description="Alarm label stored with the log")
    user_id: Optional[str] = Field(None, description="Owner of the workout log")


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


class PoseFrame(BaseModel):
    type: Literal["pose"]
    landmarks: List[Optional[LandmarkIn]] = Field(default_factory=list)
    ts: Optional[float] = None


MANAGER = AlarmSessionManager()

def ACTIVE_MANAGER() -> AlarmSessionManager:
    return MANAGER

WS_CLIENTS: Set[WebSocket] = set()
_LOOP: Optional[asyncio.AbstractEventLoop] = None

# let the manager push rep/session events to all WS clients
def _sink(ev: dict):
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None
    if loop is not None:
        loop.create_task(broadcast(ev))
    elif _LOOP is not None and _LOOP.is_running():
        # camera thread
        asyncio.run_coroutine_threadsafe(broadcast(ev), _LOOP)

MANAGER.set_event_sink(_sink)


async def broadcast(obj: dict):
    dead = []
    for ws in list(WS_CLIENTS):
        try:
            await ws.send_text(json.dumps(obj))
        except Exception:
            dead.append(ws)
    for d in dead:
        WS_CLIENTS.discard(d)


@app.get("/sessions/current")
async def current():
    m = ACTIVE_MANAGER()
    st = m.status()
    return JSONResponse({
        "state": st.state,
        "count": st.count,
        "target_count": st.target_count,
        "session_id": st.session_id or None,
        "mode": st.mode or None,
    })

@app.post("/alarm/start")
async def start(args: StartArgs):
    m = ACTIVE_MANAGER()
    try:
        sid, status = await run_in_threadpool(
            m.start,
            target_count=args.target_count,
            mode=args.mode,
            alarm_name=args.alarm_name,
            user_id=args.user_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"session_id": sid, "status": status}

@app.post("/alarm/manual")
async def manual():
    m = ACTIVE_MANAGER()
    if m.status().state != "running":
        raise HTTPException(status_code=409, detail="no active session")
    # completing the target joins the camera thread and writes the log
    counted = await run_in_threadpool(m.manual_count)
    return {"counted": counted, "count": m.count}

@app.post("/alarm/reset")
async def reset():
    m = ACTIVE_MANAGER()
    m.reset_count()
    return {"count": m.count}

@app.post("/alarm/stop")
async def stop():
    summary = await run_in_threadpool(ACTIVE_MANAGER().stop)
    if summary is None:
        return JSONResponse({"stopped": False})
    return JSONResponse({"stopped": True, **asdict(summary)})

@app.get("/history")
async def history(user_id: Optional[str] = None, limit: Optional[int] = None):
    return [asdict(log) for log in db.get_workout_logs(user_id=user_id, limit=limit)]

@app.get("/history/stats")
async def history_stats(user_id: Optional[str] = None):
    return db.calculate_workout_stats(db.get_workout_logs(user_id=user_id))

@app.websocket("/ws/frames")
async def ws_frames(ws: WebSocket):
    global _LOOP
    await ws.accept()
    _LOOP = asyncio.get_running_loop()
    WS_CLIENTS.add(ws)
    await broadcast(trace("ws: client connected"))
    try:
        while True:
            raw = await ws.receive_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                await ws.send_text(json.dumps(trace("ws: bad json")))
                continue
            if not isinstance(data, dict):
                continue

            kind = data.get("type")
            m = ACTIVE_MANAGER()
            if kind == "pose":
                try:
                    frame = PoseFrame.model_validate(data)
                except ValidationError as e:
                    await ws.send_text(json.dumps(trace(f"ws: invalid pose frame ({e.error_count()} errors)")))
                    continue
                landmarks = [lm.model_dump() if lm is not None else None for lm in frame.landmarks]
                res = m.push_pose(landmarks, frame.ts)
            elif kind == "motion":
                # sensor payloads are best effort; the preprocessor zero-fills bad axes
                res = m.push_motion(data)
            elif kind == "manual":
                m.manual_count()
                continue
            else:
                continue

            if res is not None:
                await ws.send_text(json.dumps({"type": "result", **res.as_dict()}))
    except WebSocketDisconnect:
        pass
    finally:
        WS_CLIENTS.discard(ws)
        await broadcast(trace("ws closed"))
