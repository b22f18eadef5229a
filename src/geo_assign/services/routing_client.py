# geo_assign/services/routing_client.py
import logging
import math

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from geo_assign.app.protocols import RoutingClient
from geo_assign.domain.entities.geography import GeoPoint
from geo_assign.domain.errors import RoutingError

log = logging.getLogger(__name__)

OSRM_ROUTE_URL = "https://router.project-osrm.org/route/v1/driving"


def create_retry_session(
    retries: int = 0,
    backoff_factor: float = 0.5,
    status_forcelist=(500, 502, 503, 504),
    user_agent: str | None = None,
) -> requests.Session:
    """Create a requests session with retry logic for routing calls."""
    session = requests.Session()
    retry = Retry(
        total=retries,
        read=retries,
        connect=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    if user_agent:
        session.headers["User-Agent"] = user_agent
    return session


def parse_distance_m(payload) -> float:
    """
    Pull the route distance (meters) out of an OSRM-style body.
    Accepts `routes[0].distance` or a top-level `distance`.
    """
    if not isinstance(payload, dict):
        raise RoutingError(f"unexpected routing body type {type(payload).__name__}")
    code = payload.get("code")
    if code is not None and code != "Ok":
        raise RoutingError(f"routing service error: {code} {payload.get('message', '')}".strip())

    routes = payload.get("routes")
    if isinstance(routes, list) and routes and isinstance(routes[0], dict) and "distance" in routes[0]:
        value = routes[0]["distance"]
    elif "distance" in payload:
        value = payload["distance"]
    else:
        raise RoutingError("distance not found in routing response")

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RoutingError(f"invalid distance value {value!r}")
    if not math.isfinite(value) or value < 0:
        raise RoutingError(f"invalid distance value {value!r}")
    return float(value)


class OsrmRoutingClient(RoutingClient):
    def __init__(
        self,
        base_url: str = OSRM_ROUTE_URL,
        *,
        connect_timeout_s: float = 5.0,
        total_timeout_s: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = (connect_timeout_s, total_timeout_s)
        self.session = session or create_retry_session()

    def route_url(self, a: GeoPoint, b: GeoPoint) -> str:
        # OSRM wants lng,lat
        return f"{self.base_url}/{a.longitude},{a.latitude};{b.longitude},{b.latitude}?overview=false"

    def distance_km(self, a: GeoPoint, b: GeoPoint) -> float:
        url = self.route_url(a, b)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise RoutingError(f"routing request failed: {exc}") from exc
        except ValueError as exc:  # body is not JSON
            raise RoutingError(f"malformed routing response: {exc}") from exc

        km = parse_distance_m(payload) / 1000.0
        log.debug("routing_distance", extra={"extra": {"url": url, "km": km}})
        return km
