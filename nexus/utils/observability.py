"""LLM observability with Langfuse.

Traces one orchestration cycle per trace, with a span for the planning request
and one span per executed step. Every method degrades to a no-op when Langfuse
is not installed, not configured, or failing.
"""

from typing import Any

from .logging import get_logger

logger = get_logger(__name__)

# Langfuse is an optional extra
try:
    from langfuse import Langfuse

    LANGFUSE_AVAILABLE = True
except ImportError:
    LANGFUSE_AVAILABLE = False
    Langfuse = None  # type: ignore[misc, assignment]


class LangfuseClient:
    """Wrapper for the Langfuse client with graceful degradation."""

    def __init__(
        self,
        public_key: str = "",
        secret_key: str = "",
        host: str = "https://cloud.langfuse.com",
        enabled: bool = True,
    ):
        """Initialize the Langfuse client.

        Args:
            public_key: Langfuse public key
            secret_key: Langfuse secret key
            host: Langfuse host URL
            enabled: Whether to enable Langfuse tracking
        """
        self.enabled = enabled and LANGFUSE_AVAILABLE
        self._client: Any = None
        self._traces: dict[str, Any] = {}
        self._spans: dict[str, Any] = {}

        if self.enabled and public_key and secret_key:
            try:
                self._client = Langfuse(
                    public_key=public_key,
                    secret_key=secret_key,
                    host=host,
                )
                logger.info("Langfuse client initialized", host=host)
            except Exception as e:
                logger.warning("Failed to initialize Langfuse client", error=str(e))
                self.enabled = False
        elif enabled and not LANGFUSE_AVAILABLE:
            logger.warning(
                "Langfuse package not installed. Install with: pip install 'nexus-agent-kit[observability]'"
            )
            self.enabled = False
        elif enabled and (not public_key or not secret_key):
            logger.debug("Langfuse credentials not provided, tracking disabled")
            self.enabled = False

    def start_trace(
        self,
        trace_id: str,
        name: str,
        metadata: dict[str, Any] | None = None,
        input_data: Any = None,
    ) -> str | None:
        """Start a new trace for an orchestration cycle.

        Returns:
            The trace ID if successful, None otherwise
        """
        if not self.enabled or not self._client:
            return None

        try:
            trace = self._client.trace(
                id=trace_id,
                name=name,
                input=input_data,
                metadata=metadata or {},
            )
            self._traces[trace_id] = trace
            return trace_id
        except Exception as e:
            logger.warning("Failed to start trace", error=str(e), trace_id=trace_id)
            return None

    def end_trace(
        self,
        trace_id: str,
        output: dict[str, Any] | None = None,
        status: str = "success",
    ) -> None:
        """End a trace and record the final output."""
        if not self.enabled or trace_id not in self._traces:
            return

        try:
            trace = self._traces.pop(trace_id)
            trace.update(output=output, metadata={"status": status})
        except Exception as e:
            logger.warning("Failed to end trace", error=str(e), trace_id=trace_id)

    def start_span(
        self,
        span_id: str,
        trace_id: str,
        name: str,
        input_data: dict[str, Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Start a span within an existing trace.

        Returns:
            The span ID if successful, None otherwise
        """
        if not self.enabled or trace_id not in self._traces:
            return None

        try:
            span = self._traces[trace_id].span(
                id=span_id,
                name=name,
                input=input_data,
                metadata=metadata or {},
            )
            self._spans[span_id] = span
            return span_id
        except Exception as e:
            logger.warning("Failed to start span", error=str(e), span_id=span_id)
            return None

    def end_span(
        self,
        span_id: str,
        output: dict[str, Any] | None = None,
        status: str = "success",
    ) -> None:
        """End a span and record its output."""
        if not self.enabled or span_id not in self._spans:
            return

        try:
            span = self._spans.pop(span_id)
            span.end(
                output=output,
                level="ERROR" if status == "error" else "DEFAULT",
                metadata={"status": status},
            )
        except Exception as e:
            logger.warning("Failed to end span", error=str(e), span_id=span_id)

    def flush(self) -> None:
        """Flush any pending events to Langfuse."""
        if self.enabled and self._client:
            try:
                self._client.flush()
            except Exception as e:
                logger.warning("Failed to flush Langfuse events", error=str(e))

    def shutdown(self) -> None:
        """Shutdown the Langfuse client."""
        if self.enabled and self._client:
            try:
                self._client.shutdown()
                logger.info("Langfuse client shutdown")
            except Exception as e:
                logger.warning("Failed to shutdown Langfuse client", error=str(e))


# Global observability client instance
_observability_client: LangfuseClient | None = None


def get_observability_client() -> LangfuseClient:
    """Get the global observability client, or a disabled one if not initialized."""
    if _observability_client is None:
        return LangfuseClient(enabled=False)
    return _observability_client


def init_observability(
    public_key: str = "",
    secret_key: str = "",
    host: str = "https://cloud.langfuse.com",
    enabled: bool = True,
) -> LangfuseClient:
    """Initialize the global observability client."""
    global _observability_client
    _observability_client = LangfuseClient(
        public_key=public_key,
        secret_key=secret_key,
        host=host,
        enabled=enabled,
    )
    return _observability_client


def shutdown_observability() -> None:
    """Shutdown the global observability client."""
    global _observability_client
    if _observability_client:
        _observability_client.shutdown()
        _observability_client = None


def reset_observability() -> None:
    """Reset the global observability client (mainly for testing)."""
    global _observability_client
    _observability_client = None
