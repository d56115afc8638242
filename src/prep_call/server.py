#
# Copyright (c) 2024–2025, Daily
#
# SPDX-License-Identifier: BSD 2-Clause License
#

import argparse
from contextlib import asynccontextmanager
from typing import List, Optional

import aiohttp
import uvicorn
from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config.settings import Settings, get_settings
from .errors import CallNotFoundError, ConfigurationError, PatientNotFoundError, UpstreamServiceError, ValidationError
from .models import (
    Call,
    CallOutcome,
    CreateCallRequest,
    LiveKitToken,
    OutcomeResponse,
    Patient,
    PatientWithOutcome,
    Stats,
    SuccessResponse,
    TokenRequest,
)
from .reconciler import OutcomeReconciler
from .seed import tomorrow_date
from .store import RecordStore
from .token_service import TokenService
from .utils.logging import setup_logging


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_reconciler(request: Request) -> OutcomeReconciler:
    return request.app.state.reconciler


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


router = APIRouter()


@router.get("/patients", response_model=List[Patient])
def list_patients(date: Optional[str] = None, status: Optional[str] = None, store: RecordStore = Depends(get_store)):
    try:
        return store.list_patients(date=date, status=status)
    except Exception as e:
        logger.error(f"Error fetching patients: {e}")
        return error_response(500, "Failed to fetch patients")


@router.get("/patients/tomorrow", response_model=List[Patient])
def list_patients_tomorrow(store: RecordStore = Depends(get_store)):
    try:
        return store.list_patients(date=tomorrow_date(store.clock))
    except Exception as e:
        logger.error(f"Error fetching tomorrow patients: {e}")
        return error_response(500, "Failed to fetch patients")


@router.get("/patients/{patient_id}", response_model=Patient)
def get_patient(patient_id: int, store: RecordStore = Depends(get_store)):
    try:
        return store.get_patient(patient_id)
    except PatientNotFoundError:
        return error_response(404, "Patient not found")
    except Exception as e:
        logger.error(f"Error fetching patient {patient_id}: {e}")
        return error_response(500, "Failed to fetch patient")


@router.post("/livekit/token", response_model=LiveKitToken)
async def create_livekit_token(body: Optional[TokenRequest] = None, token_service: TokenService = Depends(get_token_service)):
    participant_name = (body.patient_name if body else None) or "Staff"
    try:
        return await token_service.fetch_token(participant_name)
    except ConfigurationError as e:
        logger.error(f"POST /livekit/token: {e}")
        return error_response(500, str(e))
    except UpstreamServiceError as e:
        logger.error(f"POST /livekit/token: upstream error {e.status_code}: {e.message}")
        return error_response(e.status_code or 502, "Failed to get token from Vocal Bridge")
    except Exception as e:
        logger.error(f"Error getting LiveKit token: {e}")
        return error_response(500, "Failed to get LiveKit token")


@router.post("/calls", response_model=Call)
def create_call(body: Optional[CreateCallRequest] = None, store: RecordStore = Depends(get_store)):
    try:
        if body is None or not body.patient_id:
            raise ValidationError("patientId is required")
        call = store.create_call(body.patient_id)
        logger.info(f"Call {call.id} started for patient {body.patient_id}")
        return call
    except ValidationError as e:
        return error_response(400, str(e))
    except Exception as e:
        logger.error(f"Error creating call: {e}")
        return error_response(500, "Failed to create call")


@router.post("/calls/{patient_id}/outcome", response_model=OutcomeResponse)
def submit_outcome(patient_id: int, outcome: CallOutcome, reconciler: OutcomeReconciler = Depends(get_reconciler)):
    try:
        result = reconciler.submit_outcome(patient_id, outcome)
        return OutcomeResponse(success=True, status=result.status, call=result.call)
    except PatientNotFoundError:
        return error_response(404, "Patient not found")
    except CallNotFoundError:
        return error_response(404, "No call found for patient")
    except Exception as e:
        logger.error(f"Error saving outcome: {e}")
        return error_response(500, "Failed to save outcome")


@router.get("/followups", response_model=List[PatientWithOutcome])
def list_followups(reconciler: OutcomeReconciler = Depends(get_reconciler)):
    try:
        return reconciler.followup_queue()
    except Exception as e:
        logger.error(f"Error fetching followups: {e}")
        return error_response(500, "Failed to fetch followups")


@router.put("/followups/{patient_id}/resolve", response_model=SuccessResponse, response_model_exclude_none=True)
def resolve_followup(patient_id: int, reconciler: OutcomeReconciler = Depends(get_reconciler)):
    try:
        reconciler.resolve_followup(patient_id)
        return SuccessResponse(success=True)
    except Exception as e:
        logger.error(f"Error resolving followup: {e}")
        return error_response(500, "Failed to resolve followup")


@router.get("/stats", response_model=Stats)
def get_stats(store: RecordStore = Depends(get_store)):
    try:
        return store.stats(tomorrow_date(store.clock))
    except Exception as e:
        logger.error(f"Error fetching stats: {e}")
        return error_response(500, "Failed to fetch stats")


@router.post("/reset", response_model=SuccessResponse)
def reset_data(store: RecordStore = Depends(get_store)):
    try:
        store.reset()
        return SuccessResponse(success=True, message="Database reset to initial demo data")
    except Exception as e:
        logger.error(f"Error resetting database: {e}")
        return error_response(500, "Failed to reset database")


def create_app(
    store: Optional[RecordStore] = None,
    token_service: Optional[TokenService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.store is None:
            app.state.store = RecordStore.from_settings(settings)
        app.state.reconciler = OutcomeReconciler(app.state.store)
        aiohttp_session = aiohttp.ClientSession()
        if app.state.token_service is None:
            app.state.token_service = TokenService(aiohttp_session, settings)
        logger.info(f"Prep call API ready, tomorrow's date: {tomorrow_date(app.state.store.clock)}")
        yield
        await aiohttp_session.close()

    app = FastAPI(title="Prep Call API", lifespan=lifespan)
    app.state.store = store
    app.state.token_service = token_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"{request.method} {request.url.path}: invalid request: {exc.errors()}")
        return error_response(400, "Invalid request")

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "Prep Call API"}

    app.include_router(router, prefix=settings.API_PREFIX)
    return app


def main():
    load_dotenv(override=True)
    setup_logging()
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Prep call API server")
    parser.add_argument("--host", type=str, default=settings.HOST, help="Host to bind")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    config = parser.parse_args()

    if not settings.VOCAL_BRIDGE_API_KEY:
        logger.critical("VOCAL_BRIDGE_API_KEY is not set. POST /livekit/token will fail until it is configured.")

    logger.info(f"Starting Uvicorn server on host {config.host} and port {config.port}")
    uvicorn.run("prep_call.server:create_app", factory=True, host=config.host, port=config.port, reload=config.reload)


if __name__ == "__main__":
    main()
