import os
import sys
import argparse
from dotenv import load_dotenv
import uvicorn

# Load environment variables before importing the kubedash modules
load_dotenv()


def _get_default_workers() -> int:
    """Read the default worker count from the environment."""
    value = os.getenv("UVICORN_WORKERS", "1")
    try:
        workers = int(value)
        return max(workers, 1)
    except ValueError:
        print(f"⚠️  UVICORN_WORKERS value '{value}' is not an integer. Using 1.")
        return 1


def _poll_once() -> int:
    """Run a single cluster poll against the configured Kubernetes API and print the rows."""
    from kubedash.config import settings
    from kubedash.services import InMemoryMetricsRepository, KubernetesNodeSource, PollingService

    result = PollingService(KubernetesNodeSource(settings), InMemoryMetricsRepository()).poll_once()
    for row in result.node_rows:
        print(f"   - {row.node_name}: cpu {row.cpu_usage}%, memory {row.memory_usage}%")
    if result.cluster_row is not None:
        print(f"   cluster: {result.cluster_row.active_nodes}/{result.cluster_row.total_nodes} nodes ready")
    if result.pod_row is not None:
        print(f"   pods: {result.pod_row.running_pods}/{result.pod_row.total_pods} running")
    return 0 if result.node_rows else 1


def main():
    """Service entry point."""
    parser = argparse.ArgumentParser(
        description="Kubernetes Monitoring Dashboard API Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default (127.0.0.1:8000, auto-reload enabled)
  python run.py

  # Accept external connections
  python run.py --host 0.0.0.0 --port 8080

  # Production mode
  python run.py --no-reload

  # Poll the cluster once and print the collected rows
  python run.py --poll-once

URLs:
  - API docs (Swagger): http://localhost:8000/docs
  - Health check: http://localhost:8000/api/v1/system/health
  - Metrics: http://localhost:8000/api/v1/system/metrics
        """
    )

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind (default: 127.0.0.1)"
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind (default: 8000)"
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        default=True,
        help="Restart on code changes (development mode, default: True)"
    )

    parser.add_argument(
        "--no-reload",
        action="store_false",
        dest="reload",
        help="Disable auto-reload (production mode)"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=_get_default_workers(),
        help="Number of Uvicorn worker processes (default: UVICORN_WORKERS or 1)"
    )

    parser.add_argument(
        "--poll-once",
        action="store_true",
        help="Poll the Kubernetes API once, print the result and exit"
    )

    args = parser.parse_args()

    if args.poll_once:
        sys.exit(_poll_once())

    if args.workers < 1:
        print(f"⚠️  Invalid worker count {args.workers}. Using 1.")
        args.workers = 1

    if args.reload and args.workers > 1:
        print("⚠️  Multiple workers cannot be used with reload. Disabling reload.")
        args.reload = False

    # Stored samples and forecasts live in process memory
    if args.workers > 1:
        print("\n" + "="*60)
        print("⚠️  Warning: multi-worker mode")
        print("="*60)
        print("Each worker keeps its own in-memory metrics store and runs its")
        print("own poller and forecaster. Use --workers 1 unless")
        print("BACKGROUND_JOBS_ENABLED is false.")
        print("="*60 + "\n")

    from kubedash.config import settings
    print(f"✅ Environment loaded")
    print(f"   - Prometheus URL: {settings.PROMETHEUS_URL}")
    print(f"   - API Prometheus URL: {settings.api_prometheus_url}")
    print(f"   - Prediction API URL: {settings.PREDICTION_API_URL}")
    print(f"   - Background jobs: {'enabled' if settings.BACKGROUND_JOBS_ENABLED else 'disabled'}")

    print(f"\n{'='*60}")
    print(f"🚀 Kubernetes Monitoring Dashboard API")
    print(f"{'='*60}")
    print(f"📡 Server: http://{args.host}:{args.port}")
    print(f"📚 API Docs (Swagger): http://{args.host}:{args.port}/docs")
    print(f"❤️  Health Check: http://{args.host}:{args.port}/api/v1/system/health")
    print(f"📊 Metrics: http://{args.host}:{args.port}/api/v1/system/metrics")
    print(f"🧵 Workers: {args.workers}")
    print(f"{'='*60}\n")

    try:
        uvicorn.run(
            "kubedash.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            workers=args.workers
        )
    except KeyboardInterrupt:
        print("\n\n👋 Shutting down...")


if __name__ == "__main__":
    main()
