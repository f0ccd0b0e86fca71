"""Text generation for LLM-backed extractors (Vertex AI Gemini)."""
