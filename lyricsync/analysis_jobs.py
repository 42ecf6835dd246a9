"""
Background Analysis Jobs Module.

Runs audio analysis off the request thread. Each song keeps a submission
counter: when a job finishes, its result is only stored if no newer job was
submitted for the same song in the meantime. A slow analysis of an older
file can therefore never overwrite the result of a newer import.
"""

import logging
import threading
import uuid
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from lyricsync.audio_analysis import AudioAnalysis, analyze_audio
from lyricsync.config import JOB_LOG_MAX_LINES

__all__ = ["AnalysisJobs", "LogCaptureHandler"]

logger = logging.getLogger("lyricsync.analysis_jobs")

# Job states
QUEUED = "queued"
RUNNING = "running"
COMPLETE = "complete"
SUPERSEDED = "superseded"
ERROR = "error"
FINISHED_STATES = (COMPLETE, SUPERSEDED, ERROR)

CAPTURED_LOGGERS = [
    "lyricsync.audio_analysis",
    "lyricsync.waveform",
    "lyricsync.analysis_jobs",
]


class LogCaptureHandler(logging.Handler):
    """Logging handler that captures one worker thread's logs into a deque."""

    def __init__(self, lines: Deque[str], job_lock: threading.Lock, thread_id: int):
        super().__init__()
        self.lines = lines
        self.job_lock = job_lock
        self.thread_id = thread_id

    def emit(self, record):
        """Emit a log record to the job's log deque."""
        if record.thread != self.thread_id:
            return
        try:
            msg = self.format(record)
            with self.job_lock:
                self.lines.append(msg)
        except Exception:
            self.handleError(record)


class AnalysisJobs:
    """
    In-memory registry of analysis jobs and the latest result per song.

    Args:
        analyzer: Callable taking an audio path and returning AudioAnalysis
    """

    def __init__(self, analyzer: Callable[[str], AudioAnalysis] = analyze_audio):
        self.analyzer = analyzer
        self._lock = threading.Lock()
        self._jobs: Dict[str, Dict] = {}
        self._logs: Dict[str, Deque[str]] = {}
        self._done: Dict[str, threading.Event] = {}
        self._latest_submission: Dict[str, int] = {}
        self._results: Dict[str, AudioAnalysis] = {}

    def submit(self, song_id: str, audio_path: str) -> str:
        """
        Queue analysis of an audio file for a song.

        Any earlier job for the same song is superseded: it may still run, but
        its result will be discarded.

        Returns:
            The new job id
        """
        job_id = str(uuid.uuid4())
        with self._lock:
            sequence = self._latest_submission.get(song_id, 0) + 1
            self._latest_submission[song_id] = sequence
            self._jobs[job_id] = {
                "song_id": song_id,
                "audio": audio_path,
                "sequence": sequence,
                "status": QUEUED,
                "message": "Job queued",
            }
            self._logs[job_id] = deque(maxlen=JOB_LOG_MAX_LINES)
            self._done[job_id] = threading.Event()

        logger.info(f"Queued analysis job {job_id} for song {song_id} (submission {sequence})")
        self._start(job_id)
        return job_id

    def _start(self, job_id: str) -> None:
        """Run a job on a background daemon thread."""
        thread = threading.Thread(target=self._run, args=(job_id,))
        thread.daemon = True
        thread.start()

    def _is_latest(self, job: Dict) -> bool:
        return self._latest_submission.get(job["song_id"]) == job["sequence"]

    def _run(self, job_id: str) -> None:
        """Run the analyzer for a job in the current thread and record the outcome."""
        with self._lock:
            job = self._jobs[job_id]
            if not self._is_latest(job):
                job["status"] = SUPERSEDED
                job["message"] = "Superseded before start"
                self._done[job_id].set()
                return
            job["status"] = RUNNING

        handler = LogCaptureHandler(self._logs[job_id], self._lock, threading.get_ident())
        handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
        loggers = [logging.getLogger(name) for name in CAPTURED_LOGGERS]
        for lg in loggers:
            lg.addHandler(handler)
            lg.setLevel(logging.INFO)

        try:
            result = self.analyzer(job["audio"])
        except Exception as e:
            logger.warning(f"Analysis job {job_id} failed: {e}", exc_info=True)
            with self._lock:
                job["status"] = ERROR
                job["message"] = f"Could not analyze audio: {e}"
                self._logs[job_id].append(f"[error] {e}")
        else:
            with self._lock:
                if self._is_latest(job):
                    self._results[job["song_id"]] = result
                    job["status"] = COMPLETE
                    job["message"] = "Analysis completed successfully"
                else:
                    job["status"] = SUPERSEDED
                    job["message"] = "Discarded, a newer file was submitted"
            logger.info(f"Analysis job {job_id} {job['status']}")
        finally:
            for lg in loggers:
                lg.removeHandler(handler)
            self._done[job_id].set()

    def status(self, job_id: str) -> Optional[Dict]:
        """Get a copy of a job's state, or None if unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            return {
                "job_id": job_id,
                "song_id": job["song_id"],
                "status": job["status"],
                "message": job["message"],
            }

    def logs(self, job_id: str, start: int = 0) -> List[str]:
        """Captured log lines for a job, from index `start` on."""
        with self._lock:
            return list(self._logs.get(job_id, []))[start:]

    def result_for(self, song_id: str) -> Optional[AudioAnalysis]:
        """Latest committed analysis for a song."""
        with self._lock:
            return self._results.get(song_id)

    def wait(self, job_id: str, timeout: float | None = None) -> bool:
        """Block until a job finishes. Returns False on timeout or unknown job."""
        event = self._done.get(job_id)
        if event is None:
            return False
        return event.wait(timeout)
