"""
Quick demo script: run the Elicit API locally.

Usage:
    python scripts/run_demo.py

Needs LLM_API_KEY (or OPENAI_API_KEY) in the environment or a .env file.
"""

import uvicorn


def main():
    print("=" * 60)
    print("  Elicit: Adaptive Requirements Discovery")
    print("=" * 60)
    print()
    print("Starting server at http://localhost:8000")
    print("Start a session with POST /api/session/start")
    print()
    print("API docs: http://localhost:8000/docs")
    print("Press Ctrl+C to stop.")
    print()

    uvicorn.run(
        "elicit.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
