"""Prometheus metrics endpoint, mounted at WEB_METRICS_URL."""

from fastapi import Request, Response


async def metrics(request: Request) -> Response:
    server_metrics = request.app.state.metrics
    return Response(server_metrics.render(), media_type=server_metrics.content_type)
