"""Protean Engine runner for the sales domain.

Runs the Engine worker that delivers events to their handlers when the
domain is configured with ``event_processing = "async"``, as the
``production`` overlay is. The order confirmation email goes out here.

Usage:
    python src/server.py            # Run the sales engine
    python src/server.py --debug    # Verbose engine logging
"""

import argparse

from protean.server.engine import Engine

from sales.domain import sales
from sales.utils.logging import configure_logging


def main(argv=None):
    parser = argparse.ArgumentParser(description="Sales Engine runner")
    parser.add_argument("--debug", action="store_true", help="Log every message the engine handles")
    args = parser.parse_args(argv)

    configure_logging()
    sales.init()
    Engine(sales, debug=args.debug).run()


if __name__ == "__main__":
    main()
