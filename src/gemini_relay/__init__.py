"""
Gemini chat relay package.

Provides:
- Request normalization from browser chat payloads to Gemini generateContent
- A stateless relay handler that keeps the API key server-side
- FastAPI hosting adapter and a small command-line client
"""
