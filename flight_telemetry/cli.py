import typer
from pathlib import Path

from flight_telemetry.connectors.adsb import ADSBExchangeSource
from flight_telemetry.connectors.base import Sink, Source
from flight_telemetry.connectors.file import ConsoleSink, ReplayFileSource
from flight_telemetry.connectors.graphite import GraphiteSink, encode_metric
from flight_telemetry.models import TimestampedMetric
from flight_telemetry.pipeline import build_pipeline
from flight_telemetry.runtime.runner import Runner
from flight_telemetry.settings import settings

app = typer.Typer(help="Flight telemetry streaming job")


def _sink(graphite_host: str, graphite_port: int, dry_run: bool) -> Sink:
    if dry_run:
        return ConsoleSink()
    return GraphiteSink(host=graphite_host, port=graphite_port)


def _execute(source: Source, sink: Sink, admin: bool) -> None:
    pipeline = build_pipeline(source, sink)
    Runner(admin_enabled=admin).run(pipeline)


@app.command()
def run(
    url: str = typer.Option(settings.FEED_URL, help="ADS-B Exchange AircraftList.json URL"),
    poll_interval_ms: int = typer.Option(settings.POLL_INTERVAL_MS, help="Feed poll interval"),
    graphite_host: str = typer.Option(settings.GRAPHITE_HOST, help="Graphite pickle receiver host"),
    graphite_port: int = typer.Option(settings.GRAPHITE_PORT, help="Graphite pickle receiver port"),
    dry_run: bool = typer.Option(False, help="Print metrics instead of sending them"),
    admin: bool = typer.Option(settings.ADMIN_ENABLED, help="Serve the admin API"),
):
    """
    Polls the live feed and streams metrics until interrupted.
    """
    source = ADSBExchangeSource(url=url, poll_interval_ms=poll_interval_ms)
    _execute(source, _sink(graphite_host, graphite_port, dry_run), admin)


@app.command()
def replay(
    path: Path = typer.Argument(..., help="JSON-lines file with one raw aircraft record per line"),
    delay: float = typer.Option(0.0, help="Seconds to wait between records"),
    graphite_host: str = typer.Option(settings.GRAPHITE_HOST, help="Graphite pickle receiver host"),
    graphite_port: int = typer.Option(settings.GRAPHITE_PORT, help="Graphite pickle receiver port"),
    dry_run: bool = typer.Option(False, help="Print metrics instead of sending them"),
):
    """
    Replays a recorded feed through the pipeline; open windows flush at the end.
    """
    if not path.exists():
        typer.echo(f"Error: File {path} does not exist.")
        raise typer.Exit(code=1)
    source = ReplayFileSource(str(path), delay=delay)
    _execute(source, _sink(graphite_host, graphite_port, dry_run), admin=False)


@app.command()
def encode(
    name: str = typer.Argument(..., help="Metric name"),
    timestamp: int = typer.Argument(..., help="Epoch seconds"),
    value: float = typer.Argument(..., help="Metric value"),
):
    """
    Prints the pickle-protocol frame for one metric as hex.
    """
    frame = encode_metric(TimestampedMetric(name, timestamp, value))
    typer.echo(frame.hex())


if __name__ == "__main__":
    app()
