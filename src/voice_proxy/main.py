from __future__ import annotations

import asyncio

from voice_proxy.services.api_gateway import run_api_gateway


def main() -> int:
    return asyncio.run(run_api_gateway())
