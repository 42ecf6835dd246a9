"""
Flask API server for LyricSync.

Provides REST endpoints for background audio analysis and lyric line
resolution, plus Server-Sent Events (SSE) for streaming analysis job logs.
"""

import json
import logging
import math
import time
from pathlib import Path

from flask import Flask, jsonify, request, Response, stream_with_context
from flask_cors import CORS

from lyricsync.analysis_jobs import AnalysisJobs, FINISHED_STATES
from lyricsync.config import DEFAULT_BAR_LENGTH
from lyricsync.sync_scheduler import SyncAnchor, TempoConfig, resolve, split_lyrics

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)  # Enable CORS for the browser frontend

jobs = AnalysisJobs()


@app.route("/api/analyze", methods=["POST"])
def start_analysis():
    """Start analyzing an audio file for a song."""
    data = request.get_json(silent=True) or {}

    required = ["song_id", "audio"]
    for field in required:
        if field not in data:
            return jsonify({"error": f"Missing required field: {field}"}), 400

    audio_path = Path(data["audio"])
    if not audio_path.exists():
        return jsonify({"error": f"Audio file not found: {data['audio']}"}), 400

    job_id = jobs.submit(str(data["song_id"]), str(audio_path))
    return jsonify({
        "job_id": job_id,
        "status": "queued",
        "message": "Analysis job started",
    }), 202


@app.route("/api/logs/<job_id>", methods=["GET"])
def stream_logs(job_id: str):
    """Stream logs for a job using Server-Sent Events."""

    def generate():
        """Generate SSE log stream."""
        yield f"data: {json.dumps({'type': 'connected', 'job_id': job_id})}\n\n"

        sent = 0
        while True:
            job = jobs.status(job_id)
            if job is None:
                yield f"data: {json.dumps({'type': 'error', 'message': 'Job not found'})}\n\n"
                break

            for log_msg in jobs.logs(job_id, start=sent):
                yield f"data: {json.dumps({'type': 'log', 'message': log_msg})}\n\n"
                sent += 1

            if job["status"] in FINISHED_STATES:
                yield f"data: {json.dumps({'type': 'status', 'status': job['status'], 'message': job['message']})}\n\n"
                break

            time.sleep(0.1)  # Poll every 100ms

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        }
    )


@app.route("/api/status/<job_id>", methods=["GET"])
def get_status(job_id: str):
    """Get the status of an analysis job."""
    job = jobs.status(job_id)
    if job is None:
        return jsonify({"error": "Job not found"}), 404
    return jsonify(job)


@app.route("/api/songs/<song_id>/analysis", methods=["GET"])
def get_analysis(song_id: str):
    """Get the latest analysis stored for a song."""
    result = jobs.result_for(song_id)
    if result is None:
        return jsonify({"error": "No analysis for song"}), 404
    return jsonify({
        "song_id": song_id,
        "bpm": result.bpm,
        "waveform": result.waveform,
        "duration": result.duration,
    })


@app.route("/api/resolve", methods=["POST"])
def resolve_lines():
    """Compute the line schedule and the active line for a playback time."""
    data = request.get_json(silent=True) or {}

    try:
        lines = split_lyrics(str(data.get("lyrics", "")))
        anchors = [
            SyncAnchor(line_index=int(a["line_index"]), timestamp=float(a["timestamp"]))
            for a in data.get("anchors", [])
        ]
        bpm = data.get("bpm")
        config = TempoConfig(
            bpm=int(bpm) if bpm is not None else None,
            bar_length=int(data.get("bar_length", DEFAULT_BAR_LENGTH)),
            interpolation_enabled=bool(data.get("interpolation_enabled", False)),
        )
        playback_time = float(data.get("playback_time", 0.0))
    except (KeyError, TypeError, ValueError) as e:
        return jsonify({"error": f"Invalid request: {e}"}), 400

    result = resolve(lines, anchors, config, playback_time)
    return jsonify({
        "active_line_index": result.active_line_index,
        "schedule": [
            {
                "line_index": timing.line_index,
                # JSON has no infinity or NaN; lines that are never active serialize as null
                "timestamp": timing.timestamp if math.isfinite(timing.timestamp) else None,
                "is_interpolated": timing.is_interpolated,
            }
            for timing in result.schedule.values()
        ],
    })


@app.route("/api/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return jsonify({"status": "ok"}), 200
