#
# Copyright (c) 2024–2025, Daily
#
# SPDX-License-Identifier: BSD 2-Clause License
#

import argparse
import asyncio
import sys
from typing import Optional

import aiohttp
from dotenv import load_dotenv
from loguru import logger

from .api_client import PrepCallClient
from .config.settings import get_settings
from .models import OutcomeResponse
from .session.controller import CallSessionController
from .session.events import SessionFactory
from .session.livekit_session import livekit_session_factory
from .utils.logging import setup_logging
from .workflow import CallWorkflow


async def run_call(
    patient_id: int,
    api_url: Optional[str] = None,
    max_seconds: float = 600.0,
    session_factory: Optional[SessionFactory] = None,
    poll_seconds: float = 0.5,
) -> Optional[OutcomeResponse]:
    """Place one prep call without a UI and submit what the agent filled in.

    The call ends when the agent hangs up or after ``max_seconds``.
    """
    settings = get_settings()
    session_factory = session_factory or livekit_session_factory(settings)

    async with aiohttp.ClientSession() as http:
        client = PrepCallClient(http, base_url=api_url)
        patient = await client.get_patient(patient_id)

        async with CallSessionController(client.get_livekit_token, session_factory, settings) as controller:
            workflow = CallWorkflow(patient, client, controller)
            await workflow.start()
            if not controller.is_connected:
                logger.error(f"Could not reach the voice agent for {patient.name}: {controller.error}")
                return None

            loop = asyncio.get_running_loop()
            deadline = loop.time() + max_seconds
            try:
                while controller.is_connected and loop.time() < deadline:
                    await asyncio.sleep(poll_seconds)
            finally:
                await workflow.end()

            result = await workflow.submit()
            logger.info(f"Prep call for {patient.name} finished: {result.status.value}")
            return result


def main():
    load_dotenv(override=True)
    setup_logging()
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Place one prep call from the command line")
    parser.add_argument("patient_id", type=int, help="Patient to call")
    parser.add_argument("-u", "--api-url", type=str, default=settings.API_URL, help="Prep call API base URL")
    parser.add_argument("-m", "--max-seconds", type=float, default=600.0, help="Hang up after this many seconds")
    config = parser.parse_args()

    try:
        result = asyncio.run(run_call(config.patient_id, config.api_url, config.max_seconds))
    except Exception as e:
        logger.error(f"Prep call failed: {e}")
        sys.exit(1)
    if result is None:
        sys.exit(1)


if __name__ == "__main__":
    main()
