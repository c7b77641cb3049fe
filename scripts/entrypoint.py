import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Start the refinement service; migrations run as a separate deploy step."""
  logger.info("Starting refinement service (run alembic upgrade head in the deploy pipeline)...")
  # exec so uvicorn receives SIGTERM directly.
  port = os.getenv("PORT", "8080")
  os.execvp("uvicorn", ["uvicorn", "refiner.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"])


if __name__ == "__main__":
  main()
