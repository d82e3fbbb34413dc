# utils.py
"""
Utility functions for the particle morph engine.

This module provides helpers that are used across different parts of the
application but do not belong to a specific domain like shapes or physics:
the injectable random source, logging setup and configuration loading.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any, Optional, Protocol

import numpy as np

# --- Data Contracts ---
#
# class RandomSource(Protocol):
#   - uniform(self, low, high, size) -> np.ndarray:
#     - Inputs: half-open bounds [low, high) and an int or tuple size.
#     - Outputs: float64 array of the requested size.
#   - numpy.random.Generator satisfies this protocol as-is.
#
# make_random_source(seed: Optional[int]) -> RandomSource:
#   - Outputs: a numpy Generator seeded with `seed` (OS entropy if None).
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler.
#   - Invariants: After this function runs, the logging system is
#     initialized and ready for use throughout the application.


class RandomSource(Protocol):
    """Uniform random generator shared by shape sampling, morphs and wind."""

    def uniform(self, low=0.0, high=1.0, size=None) -> np.ndarray:
        ...


def make_random_source(seed: Optional[int] = None) -> RandomSource:
    """
    Creates the engine's random source.

    Rule 12: All randomness is controlled by a single master seed, so one
    generator is created here and handed to every component that samples.
    """
    rng = np.random.default_rng(seed)
    logging.debug(f"Random source created with seed {seed}.")
    return rng


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/engine.log')

    # Ensure the log directory exists
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotates when the log reaches 1MB, keeps 5 backup logs.
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path, maxBytes=1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path}")


def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise
