import argparse
import json
import logging
import sys

import uvicorn

from app import create_app
from .config import ConfigError, ExporterConfig, exporter_config

logger = logging.getLogger(__name__)


class JsonFormatter(logging.Formatter):
    """One JSON object per line: date, level, logger and message."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "date": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "log": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def parse_args(argv=None) -> ExporterConfig:
    parser = argparse.ArgumentParser(
        prog="atlas-billing-exporter",
        description="Export MongoDB Atlas pending invoice data as Prometheus metrics"
    )
    parser.add_argument("-p", "--port", default=exporter_config.port, help="Set port to listen on")
    parser.add_argument("-t", "--timeout", default=exporter_config.timeout, help="Set default global timeout in seconds")
    parser.add_argument("-k", "--public-key", default=exporter_config.public_key, help="Set MongoDB Atlas public key")
    parser.add_argument("-s", "--private-key", default=exporter_config.private_key, help="Set MongoDB Atlas private key")
    parser.add_argument("-o", "--org", default=exporter_config.org_id, help="Set org id")
    parser.add_argument("-u", "--url", default=exporter_config.base_url, help="Set MongoDB Atlas API base url")
    parser.add_argument("--log-level", default=exporter_config.log_level, help="Set log level")

    args = parser.parse_args(argv)

    return ExporterConfig(
        port=args.port,
        timeout=args.timeout,
        public_key=args.public_key,
        private_key=args.private_key,
        org_id=args.org,
        base_url=args.url,
        log_level=args.log_level.upper(),
    ).validate()


def main(argv=None):
    try:
        config = parse_args(argv)
    except ConfigError as e:
        print(f"atlas-billing-exporter: {e}", file=sys.stderr)
        sys.exit(2)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        handlers=[handler],
    )

    app = create_app(config)
    logger.info(f"Listening on 0.0.0.0:{config.port}")
    logger.info(f"API: {config.base_url}, org: {config.org_id}")
    uvicorn.run(app, host="0.0.0.0", port=config.port, log_config=None)


if __name__ == "__main__":
    main()
