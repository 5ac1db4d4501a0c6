class RateLimitError(Exception):
    """Sollevata quando il feed risponde 429 anche dopo tutti i tentativi di retry."""


class TransientAPIError(Exception):
    """Sollevata quando errori transitori (5xx / timeout / connessione) persistono oltre i tentativi massimi."""


class TokenError(Exception):
    """Sollevata quando non è possibile ottenere il token di sessione del feed."""
