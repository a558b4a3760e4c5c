
import os
import logging
from typing import Dict, Any
import pandas as pd

logger = logging.getLogger(__name__)

# Default configuration
DEFAULT_CONFIG = {
    'years': [2025, 2030, 2035, 2040, 2045, 2050],
    'fallback_year': 2035,  # representative year when no year abates
    'discount_rate': 0.10,
    'currency': '₹',
    'default_tenure_years': 10,
    'default_interest_pct': 7,
    'palette': [
        '#4e79a7', '#f28e2b', '#e15759', '#76b7b2', '#59a14f',
        '#edc949', '#af7aa1', '#ff9da7', '#9c755f', '#bab0ab',
        '#2f4b7c', '#ffa600', '#a05195', '#003f5c', '#d45087',
        '#1f77b4', '#ff7f0e', '#2ca02c', '#d62728', '#9467bd',
        '#8c564b', '#e377c2', '#7f7f7f', '#bcbd22', '#17becf',
    ],
}

YEARS = tuple(DEFAULT_CONFIG['years'])
BASE_YEAR = YEARS[0]
FALLBACK_YEAR = DEFAULT_CONFIG['fallback_year']
DISCOUNT_RATE = DEFAULT_CONFIG['discount_rate']
PALETTE = tuple(DEFAULT_CONFIG['palette'])
DEFAULT_TENURE_YEARS = DEFAULT_CONFIG['default_tenure_years']
DEFAULT_INTEREST_PCT = DEFAULT_CONFIG['default_interest_pct']

# Not configurable; saved firm data is stored in crore
CR = 10_000_000  # 1 crore
ALL_SECTORS = 'All sectors'
FIRM_SECTOR_PREFIX = 'Firm – '
SINGULAR_TOL = 1e-12
PIECEWISE_STEPS = 50


def load_config(config_file: str = None) -> Dict[str, Any]:
    """
    Load configuration from a JSON file on top of the defaults.

    Keys missing from the file keep their default value; an unreadable file
    leaves the defaults untouched. ``base_year`` is always the first modelled year.
    """
    config = {k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULT_CONFIG.items()}

    if config_file and os.path.exists(config_file):
        try:
            custom_config = pd.read_json(config_file, typ='series').to_dict()
            config.update(custom_config)
            logger.info(f"Loaded configuration from {config_file}")
        except ValueError as e:
            logger.warning(f"Error loading config file: {e}")
            logger.warning("Using default configuration")

    config['years'] = sorted(int(y) for y in config['years'])
    config['base_year'] = config['years'][0] if config['years'] else BASE_YEAR
    return config
