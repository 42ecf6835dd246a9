"""
API Server entry point for LyricSync.

Starts the Flask development server for the analysis and sync API.
"""

import logging
import sys

from lyricsync.api import app
from lyricsync.config import API_PORT

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)

logger = logging.getLogger(__name__)


def main():
    """Start the Flask API server."""
    logger.info(f"Starting LyricSync API server on http://localhost:{API_PORT}")
    logger.info("API endpoints:")
    logger.info("  POST   /api/analyze - Start an analysis job")
    logger.info("  GET    /api/logs/<job_id> - Stream logs (SSE)")
    logger.info("  GET    /api/status/<job_id> - Get job status")
    logger.info("  GET    /api/songs/<song_id>/analysis - Latest BPM and waveform")
    logger.info("  POST   /api/resolve - Resolve the active lyric line")
    logger.info("  GET    /api/health - Health check")

    app.run(host="0.0.0.0", port=API_PORT, debug=True, threaded=True)


if __name__ == "__main__":
    main()
