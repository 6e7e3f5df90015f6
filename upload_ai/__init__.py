"""
Upload AI turns a video into a transcription request, providing
- an in-process ffmpeg adapter that extracts the audio track as MP3,
- a workflow controller driving the convert, upload and transcription stages,
- and a FastAPI backend storing videos and prompts through SQLAlchemy.
"""

__version__ = "0.1.0"
