import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from core.commerce_client.client import CommerceClient
from core.linesheet_generator.data.models import Catalog, Company
from core.linesheet_generator.generate_linesheet import (
    OUTPUT_TYPES, XLSX_MEDIA_TYPE, LinesheetAssembler, default_assembler, generate,
)
from core.linesheet_generator.utils.bundler import ZIP_MEDIA_TYPE, bundle_filename, bundle_files
from core.utils.snitch import start_trace

router = APIRouter(prefix="/api", tags=["linesheet"])
logger = logging.getLogger(__name__)


# --- Schemas ---

class GenerateLinesheetRequest(BaseModel):
    company: Company
    catalogIds: List[str] = Field(default_factory=list)
    catalogs: List[Catalog] = Field(min_length=1)
    outputType: str = "combined"


# --- Dependencies ---

@lru_cache(maxsize=1)
def get_commerce_client() -> CommerceClient:
    return CommerceClient.from_config()


def get_assembler() -> LinesheetAssembler:
    return default_assembler()


def _attachment(content: bytes, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _invalid_input(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "invalid_input", "message": message})


# --- Commerce data ---

@router.get("/location/{location_id}/b2b-data")
def location_b2b_data(location_id: str, client: CommerceClient = Depends(get_commerce_client)):
    logger.info(f"Fetching B2B data for location: {location_id}")
    return client.fetch_location_b2b_data(location_id)


@router.get("/location/{location_id}/catalogs")
def location_catalogs(location_id: str, client: CommerceClient = Depends(get_commerce_client)):
    return client.fetch_location_catalogs(location_id)


@router.get("/location/{location_id}")
def location(location_id: str, client: CommerceClient = Depends(get_commerce_client)):
    return client.fetch_company_location(location_id)


@router.get("/catalog/{catalog_id}/products")
def catalog_products(catalog_id: str, client: CommerceClient = Depends(get_commerce_client)):
    return client.fetch_catalog_products(catalog_id)


# --- Generation ---

@router.post("/generate-linesheet")
async def generate_linesheet(payload: Dict[str, Any] = Body(...),
                             assembler: LinesheetAssembler = Depends(get_assembler)):
    """
    Builds the requested linesheet(s).

    One workbook comes back as an .xlsx attachment; separate output with more
    than one catalog comes back as a ZIP of per-catalog workbooks.
    """
    trace_id = start_trace()
    try:
        request = GenerateLinesheetRequest.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"[{trace_id}] Invalid generate-linesheet payload: {e.error_count()} error(s)")
        return _invalid_input("Invalid input data: company and a non-empty catalogs list are required")

    if request.outputType not in OUTPUT_TYPES:
        return _invalid_input(f"outputType must be one of {', '.join(OUTPUT_TYPES)}")

    logger.info(
        f"[{trace_id}] Generating {request.outputType} linesheet for {request.company.name} "
        f"(catalogs: {', '.join(request.catalogIds) or len(request.catalogs)})"
    )
    result = await run_in_threadpool(generate, request.company, request.catalogs, request.outputType, assembler)

    if result.is_bundle:
        if len(result.files) == 1:
            only = result.files[0]
            return _attachment(only.buffer, only.filename, XLSX_MEDIA_TYPE)
        archive = await run_in_threadpool(bundle_files, result.files)
        return _attachment(archive, bundle_filename(request.company.name), ZIP_MEDIA_TYPE)

    return _attachment(result.buffer, result.filename, XLSX_MEDIA_TYPE)
