import re
from typing import Optional
import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from passshare.settings import Settings

logger = logging.getLogger(__name__)


class RedactingSpanProcessor(SpanProcessor):
    """
    SpanProcessor that redacts sensitive attributes from spans before they are
    handed to the wrapped processor for export.
    """

    def __init__(self, processor: SpanProcessor):
        self._processor = processor
        self._sensitive_keys = {
            "authorization", "cookie", "set-cookie",
            "encrypteddata", "encrypted_data", "http.url", "url.full",
        }
        self._sensitive_patterns = [
            re.compile(r"http\.request\.header\..*", re.IGNORECASE),
            re.compile(r"http\.response\.header\..*", re.IGNORECASE),
            re.compile(r".*(secret|key|token|nonce|fragment).*", re.IGNORECASE),
        ]

    def on_start(self, span: Span, parent_context: Optional[Context] = None) -> None:
        self._processor.on_start(span, parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        if span.attributes:
            redacted = {
                key: "[REDACTED]" if self._should_redact(key) else value
                for key, value in span.attributes.items()
            }
            # The delegate reads _attributes when exporting; the span is already ended
            if hasattr(span, "_attributes"):
                span._attributes = redacted

        self._processor.on_end(span)

    def shutdown(self) -> None:
        self._processor.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._processor.force_flush(timeout_millis)

    def _should_redact(self, key: str) -> bool:
        key_lower = key.lower()
        if key_lower in self._sensitive_keys:
            return True
        return any(pattern.match(key_lower) for pattern in self._sensitive_patterns)


def setup_opentelemetry(app: FastAPI, settings: Settings) -> None:
    if not settings.TRACING_ENABLED:
        return

    provider = TracerProvider()

    if settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        processor = BatchSpanProcessor(
            OTLPSpanExporter(endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT, insecure=True)
        )
    elif settings.DEV_MODE:
        processor = BatchSpanProcessor(ConsoleSpanExporter())
    else:
        processor = None

    if processor:
        provider.add_span_processor(RedactingSpanProcessor(processor))

    trace.set_tracer_provider(provider)

    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider, excluded_urls="health/*")
    logger.info("Tracing enabled.")
