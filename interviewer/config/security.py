"""
Security-critical configuration injection.

SECURITY POLICY:
- API keys MUST NEVER be in YAML files
- The OpenAI key comes from the environment only
"""

import os
from typing import Any, Dict


def _is_nonempty_string(val: Any) -> bool:
    return isinstance(val, str) and val.strip() != ""


def inject_realtime_api_key(config_data: Dict[str, Any]) -> None:
    """
    Inject the OpenAI API key from the environment ONLY.

    Any ``realtime.api_key`` present in YAML is discarded so a key committed
    by mistake is never used.

    Environment variables:
    - OPENAI_API_KEY

    Args:
        config_data: Configuration dictionary to modify in-place
    """
    realtime_block = config_data.get('realtime') or {}
    if not isinstance(realtime_block, dict):
        realtime_block = {}

    api_key = os.getenv('OPENAI_API_KEY')
    realtime_block['api_key'] = api_key.strip() if _is_nonempty_string(api_key) else None
    config_data['realtime'] = realtime_block
