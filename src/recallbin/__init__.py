"""RecallBin: save links and notes with AI summaries for later recall."""

__version__ = "0.1.0"
