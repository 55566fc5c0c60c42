"""One-off entrypoint that creates the papers and question_answering tables."""

import asyncio

from papernotes.db import init_db
from papernotes.logging import setup_logging


def main() -> None:
    setup_logging()
    asyncio.run(init_db())


if __name__ == "__main__":
    main()
