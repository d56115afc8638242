#
# Copyright (c) 2024–2025, Daily
#
# SPDX-License-Identifier: BSD 2-Clause License
#

import asyncio
from typing import Optional

import aiohttp
from loguru import logger

from .config.settings import Settings, get_settings
from .errors import ConfigurationError, UpstreamServiceError
from .models import LiveKitToken


class TokenService:
    """Issues session credentials (LiveKit URL + token) from the Vocal Bridge API.

    Transport failures and 5xx answers are retried a bounded number of times
    with a linear backoff; 4xx answers fail straight away.
    """

    def __init__(self, aiohttp_session: aiohttp.ClientSession, settings: Optional[Settings] = None):
        self.aiohttp_session = aiohttp_session
        self.settings = settings or get_settings()

    async def fetch_token(self, participant_name: Optional[str] = None) -> LiveKitToken:
        api_key = self.settings.VOCAL_BRIDGE_API_KEY
        if not api_key:
            raise ConfigurationError("VOCAL_BRIDGE_API_KEY not configured")

        payload = {"participant_name": participant_name or "Staff"}
        headers = {"X-API-Key": api_key, "Content-Type": "application/json"}
        timeout = aiohttp.ClientTimeout(total=self.settings.TOKEN_TIMEOUT_SECONDS)
        max_retries = self.settings.TOKEN_MAX_RETRIES

        retry_count = 0
        while True:
            try:
                async with self.aiohttp_session.post(
                    self.settings.VOCAL_BRIDGE_TOKEN_URL, json=payload, headers=headers, timeout=timeout
                ) as resp:
                    if resp.status >= 500 and retry_count < max_retries:
                        error_text = await resp.text()
                        logger.warning(f"Vocal Bridge API returned {resp.status}: {error_text}")
                    elif resp.status >= 400:
                        error_text = await resp.text()
                        logger.error(f"Vocal Bridge API error. Status: {resp.status}, Response: {error_text}")
                        raise UpstreamServiceError("Failed to get token from Vocal Bridge", status_code=resp.status)
                    else:
                        token_data = await resp.json()
                        token = LiveKitToken.model_validate(token_data)
                        logger.info(f"Vocal Bridge token issued for '{payload['participant_name']}' (room: {token.room_name})")
                        return token
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if retry_count >= max_retries:
                    logger.error(f"Vocal Bridge token request failed after {retry_count + 1} attempts: {e!r}")
                    raise UpstreamServiceError("Failed to reach Vocal Bridge", status_code=502) from e
                logger.warning(f"Vocal Bridge token request failed: {e!r}")

            retry_count += 1
            logger.info(f"Retrying token request ({retry_count}/{max_retries})...")
            await asyncio.sleep(self.settings.TOKEN_RETRY_BACKOFF_SECONDS * retry_count)
