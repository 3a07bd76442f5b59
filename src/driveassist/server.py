"""Server entry point for the Drive Assistant API."""

import os

import uvicorn


def main():
    """Run the FastAPI server."""
    uvicorn.run(
        "driveassist.api:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8080")),
        log_level="info",
    )


if __name__ == "__main__":
    main()
