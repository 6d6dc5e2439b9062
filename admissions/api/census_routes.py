"""Admissions Analytics — Census API Routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from admissions.api.dependencies import get_census_service
from admissions.connectors.edge_functions import EdgeFunctionError
from admissions.core.logging import get_logger
from admissions.models.census_models import CensusLookup, GeocodeResult
from admissions.services.census_service import (
    CensusService,
    CensusUnavailableError,
    GeocodingError,
    InvalidAddressError,
)

logger = get_logger("api.census")

router = APIRouter(prefix="/census", tags=["Census"])


@router.get("/geocode", response_model=GeocodeResult)
async def geocode_address(
    address: str = Query(..., description="Street address to geocode"),
    service: CensusService = Depends(get_census_service),
):
    """Resolve an address to coordinates."""
    try:
        return await service.geocode(address)
    except InvalidAddressError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GeocodingError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EdgeFunctionError as e:
        logger.error(f"Geocoding failed: {e}", extra={"status_code": e.status_code})
        raise HTTPException(status_code=502, detail="Geocoding failed")


@router.get("", response_model=CensusLookup)
async def get_census_data(
    address: str = Query(..., description="Street address to search around"),
    service: CensusService = Depends(get_census_service),
):
    """Census figures for the tracts around an address."""
    try:
        return await service.lookup(address)
    except InvalidAddressError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (GeocodingError, CensusUnavailableError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EdgeFunctionError as e:
        logger.error(
            f"Census lookup failed: {e}", extra={"status_code": e.status_code}
        )
        raise HTTPException(status_code=502, detail="Census data not available")
