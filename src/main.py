import sys
import logging

from config import parse_args
from csv_io import write_accounts
from engine import PaymentsEngine
from errors import PaymentsEngineError


def main(argv=None) -> int:
    filepath, config = parse_args(argv)

    logging.basicConfig(
        level=config.logging_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(config)
    try:
        accounts = engine.process_file(filepath)
    except PaymentsEngineError as e:
        logging.getLogger(__name__).error(str(e))
        return 1

    write_accounts(accounts, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
