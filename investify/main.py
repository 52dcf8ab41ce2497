import json
import asyncio
import logging
from typing import List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from .config import get_settings
from .pipeline import analyze, analyze_batch
from .schemas import AnalyzeBody, BatchBody, CombinedResult, LogEvent

logging.basicConfig(level=get_settings().log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Investify API")
app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

DONE = "__DONE__"

@app.get("/")
async def root():
	return {"status": "Investify API Running", "version": "1.0"}

@app.post("/analyze", response_model=CombinedResult)
async def analyze_investment(body: AnalyzeBody):
	return await analyze(body.content, body.options)

@app.post("/analyze/batch", response_model=List[CombinedResult])
async def analyze_investments(body: BatchBody):
	return await analyze_batch(body.contents, body.options)

@app.post("/analyze/stream")
async def analyze_stream(body: AnalyzeBody):
	event_queue = asyncio.Queue()

	def emit(event_type, request_id=None, message=None, agent=None, data=None):
		evt = LogEvent(type=event_type, request_id=request_id, message=message, agent=agent, data=data)
		event_queue.put_nowait(evt.model_dump())

	async def sse_stream():
		task = asyncio.create_task(analyze(body.content, body.options, emit))
		task.add_done_callback(lambda _: event_queue.put_nowait(DONE))
		while True:
			evt = await event_queue.get()
			if evt == DONE:
				break
			yield f"data: {json.dumps(evt, default=str)}\n\n"
		if task.cancelled():
			logger.warning("Streaming analysis was cancelled")
			yield f"data: {json.dumps({'type': 'error', 'message': 'Analysis cancelled'})}\n\n"
			return
		if task.exception() is not None:
			logger.error(f"Streaming analysis failed: {task.exception()}")
			yield f"data: {json.dumps({'type': 'error', 'message': str(task.exception())})}\n\n"
			return
		yield f"data: {json.dumps({'type': 'complete', 'result': task.result().model_dump()})}\n\n"

	headers = {
		"Cache-Control": "no-cache",
		"X-Accel-Buffering": "no"
	}
	return StreamingResponse(sse_stream(), media_type="text/event-stream", headers=headers)

if __name__ == "__main__":
	import uvicorn
	uvicorn.run("investify.main:app", host="0.0.0.0", port=8000, reload=True)
