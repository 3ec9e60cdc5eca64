"""Lesson and quiz generation relay in front of OpenAI, Groq or Ollama."""
