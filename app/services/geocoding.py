import os
import logging
from typing import Optional

import requests
from dotenv import load_dotenv
from fastapi import HTTPException
from fastapi.concurrency import run_in_threadpool

from app.models.place import Coordinates

load_dotenv()
logger = logging.getLogger(__name__)

GOOGLE_GEOCODING_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class Geocoder:
    """Resolve free-text addresses to coordinates with the Google Geocoding API."""

    def __init__(self, api_key: Optional[str] = None, url: Optional[str] = None):
        self.api_key = api_key or os.getenv("GOOGLE_API_KEY")
        self.url = url or os.getenv("GEOCODING_URL", GOOGLE_GEOCODING_URL)

        if not self.api_key:
            raise ValueError("GOOGLE_API_KEY environment variable is required")

    def _request(self, address: str) -> dict:
        response = requests.get(self.url, params={"address": address, "key": self.api_key})
        response.raise_for_status()
        return response.json()

    async def get_coordinates(self, address: str) -> Coordinates:
        """
        One provider call per invocation, no caching and no retry.
        Unresolvable addresses raise 422, provider failures raise 500.
        """
        try:
            data = await run_in_threadpool(self._request, address)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"[GEOCODER] Provider request failed: {e}")
            raise HTTPException(status_code=500, detail="Geocoding service failed, please try again later.")

        provider_status = data.get("status")
        results = data.get("results") or []
        if provider_status == "ZERO_RESULTS" or (provider_status == "OK" and not results):
            logger.info(f"[GEOCODER] No results for address {address!r}")
            raise HTTPException(status_code=422, detail="Could not find location for the specified address.")
        if provider_status != "OK":
            logger.error(f"[GEOCODER] Provider returned {provider_status}: {data.get('error_message')}")
            raise HTTPException(status_code=500, detail="Geocoding service failed, please try again later.")

        location = results[0]["geometry"]["location"]
        return Coordinates(lat=location["lat"], lng=location["lng"])


# Provider (singleton) for dependency injection
_geocoder_instance = None

def get_geocoder() -> "Geocoder":
    global _geocoder_instance
    if _geocoder_instance is None:
        _geocoder_instance = Geocoder()
    return _geocoder_instance
