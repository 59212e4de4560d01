"""
StudyScribe - local AI study aids for long documents.

Turns document text into summaries, key points, key terms and quizzes by
streaming generations from a locally hosted Ollama server.
"""

__version__ = "0.1.0"
