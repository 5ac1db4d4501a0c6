from __future__ import annotations

import random
import time
from typing import Any, Dict, Optional

import requests

from core.config import get_settings
from core.logging import get_logger
from .exceptions import RateLimitError, TokenError, TransientAPIError

log = get_logger(__name__)

TOKEN_URL = "https://www.mackolik.com/ajax/middleware/token"
BULLETIN_API_URL = "https://api.mackolikfeeds.com/betting-service/bulletin/sport/1"
MATCHES_API_URL = "https://api.mackolikfeeds.com/api/matches/"

_AUTH_REJECTED = (401, 403)

API_HEADERS = {
    "Host": "api.mackolikfeeds.com",
    "User-Agent": "Dalvik/2.1.0 (Linux; U; Android 12; SM-G991B Build/SP1A.210812.016)",
    "Connection": "Keep-Alive",
    "Accept": "*/*",
    "Accept-Encoding": "gzip",
    "X-Authorization": "token true",
}


class MackolikHttpClient:
    """
    Client HTTP per i feed Mackolik con retry e backoff (requests).
    Gestisce rate limit (429), errori transitori (5xx, network) e ritorna JSON.

    Telemetria dell'ultima chiamata:
      - _last_attempts / _last_retries
      - _last_latency_ms: durata totale (successo o errore finale)
      - _last_status: ultimo HTTP status code ricevuto (None se nessuna risposta)
    """

    def __init__(self) -> None:
        self._settings = get_settings()
        self._session = requests.Session()
        self._session.headers.update(API_HEADERS)
        self._max_attempts = self._settings.mackolik_max_attempts
        self._base = self._settings.mackolik_backoff_base
        self._factor = self._settings.mackolik_backoff_factor
        self._jitter = self._settings.mackolik_backoff_jitter
        self._timeout = self._settings.mackolik_timeout
        self._token: Optional[str] = None

        self._last_attempts: int = 0
        self._last_retries: int = 0
        self._last_latency_ms: float = 0.0
        self._last_status: Optional[int] = None

    def _compute_delay(self, attempt: int) -> float:
        # attempt parte da 1
        delay = self._base * (self._factor ** (attempt - 1))
        if self._jitter > 0:
            mult = random.uniform(1 - self._jitter, 1 + self._jitter)
            delay *= mult
        return delay

    def _record(self, attempt: int, started: float) -> None:
        self._last_attempts = attempt
        self._last_retries = attempt - 1
        self._last_latency_ms = (time.perf_counter() - started) * 1000

    def get_token(self, refresh: bool = False) -> str:
        """Token di sessione richiesto dall'header X-RequestToken (cache per istanza)."""
        if self._token and not refresh:
            return self._token
        log.info("Richiesta token Mackolik")
        try:
            data = self.get_json(TOKEN_URL, headers={"Host": "www.mackolik.com"})
        except (RateLimitError, TransientAPIError, ValueError, RuntimeError) as e:
            raise TokenError(f"Token Mackolik non ottenuto: {e}") from e
        token = ((data or {}).get("data") or {}).get("token")
        if not token:
            raise TokenError(f"Token Mackolik assente nella risposta: {data!r}")
        self._token = str(token)
        return self._token

    def api_get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        GET autenticato su un feed (token in X-RequestToken).
        Su 401/403 il token viene rinnovato e la richiesta ripetuta una volta.
        """
        token = self.get_token()
        try:
            return self.get_json(url, params=params, headers={"X-RequestToken": token})
        except ValueError:
            if self._last_status not in _AUTH_REJECTED:
                raise
            log.warning("Token Mackolik rifiutato (status=%s), rinnovo", self._last_status)
        token = self.get_token(refresh=True)
        return self.get_json(url, params=params, headers={"X-RequestToken": token})

    def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        log.info("mackolik GET %s params=%s", url, params)
        started = time.perf_counter()
        last_status: Optional[int] = None
        last_reason: Optional[str] = None

        self._last_attempts = 0
        self._last_retries = 0
        self._last_latency_ms = 0.0
        self._last_status = None

        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = self._session.get(url, params=params, headers=headers, timeout=self._timeout)
            except (requests.Timeout, requests.ConnectionError) as e:
                last_reason = f"network:{e.__class__.__name__}"
                if attempt == self._max_attempts:
                    self._record(attempt, started)
                    raise TransientAPIError(
                        f"Errore di rete persistente dopo {attempt} tentativi: {e}"
                    ) from e
                wait = self._compute_delay(attempt)
                log.warning("retry attempt=%s wait=%.2fs reason=%s", attempt, wait, last_reason)
                time.sleep(wait)
                continue

            last_status = resp.status_code
            self._last_status = last_status

            if 200 <= resp.status_code < 300:
                self._record(attempt, started)
                try:
                    return resp.json()
                except ValueError as e:
                    raise RuntimeError(
                        f"Risposta non valida (non JSON) status={resp.status_code}"
                    ) from e

            if resp.status_code == 429:
                last_reason = "rate_limit"
                if attempt == self._max_attempts:
                    self._record(attempt, started)
                    raise RateLimitError(f"Rate limit dopo {attempt} tentativi (429).")
                wait = self._compute_delay(attempt)
                retry_after = resp.headers.get("Retry-After")
                if retry_after:
                    try:
                        wait = max(wait, float(retry_after))
                    except ValueError:
                        pass
                log.warning("retry attempt=%s wait=%.2fs reason=rate_limit", attempt, wait)
                time.sleep(wait)
                continue

            if resp.status_code in (500, 502, 503, 504):
                last_reason = f"http_{resp.status_code}"
                if attempt == self._max_attempts:
                    self._record(attempt, started)
                    raise TransientAPIError(
                        f"Status {resp.status_code} persistente dopo {attempt} tentativi."
                    )
                wait = self._compute_delay(attempt)
                log.warning("retry attempt=%s wait=%.2fs reason=%s", attempt, wait, last_reason)
                time.sleep(wait)
                continue

            self._record(attempt, started)
            if 400 <= resp.status_code < 500:
                raise ValueError(
                    f"Richiesta fallita (status={resp.status_code}) non retriable: {resp.text[:200]}"
                )
            raise RuntimeError(
                f"Risposta inattesa (status={resp.status_code}) non retriable: {resp.text[:200]}"
            )

        self._record(self._max_attempts, started)
        raise RuntimeError(
            f"Fallimento imprevisto url={url} last_status={last_status} reason={last_reason}"
        )

    def get_stats(self) -> Dict[str, Any]:
        return {
            "attempts": self._last_attempts,
            "retries": self._last_retries,
            "latency_ms": round(self._last_latency_ms, 2),
            "last_status": self._last_status,
        }


def get_http_client() -> MackolikHttpClient:
    """
    Restituisce sempre una nuova istanza per far sì che i test che
    modificano le variabili d'ambiente abbiano effetto immediato.
    """
    return MackolikHttpClient()
