"""Tests for sparebook.core.utils.logging."""

import os

from loguru import logger

from sparebook.core.config import Config
from sparebook.core.utils.logging import setup_logging, setup_logging_from_config


class TestSetupLogging:
    def test_file_sink(self, tmp_dir):
        log_file = os.path.join(tmp_dir, "sparebook.log")
        setup_logging(level="info", log_file=log_file)
        logger.info("hello from the ledger")
        logger.debug("too quiet to land")
        logger.remove()

        with open(log_file) as f:
            contents = f.read()
        assert "hello from the ledger" in contents
        assert "too quiet to land" not in contents

    def test_from_config(self, tmp_dir):
        log_file = os.path.join(tmp_dir, "from-config.log")
        config = Config(env_prefix="", defaults={"logging": {"level": "DEBUG", "file": log_file}})
        setup_logging_from_config(config)
        logger.debug("replaying 3 investment transaction(s)")
        logger.remove()

        with open(log_file) as f:
            assert "replaying 3" in f.read()
