"""Azure Functions app using v2 programming model.

Requires AzureWebJobsFeatureFlags=EnableWorkerIndexing app setting.

Functions:
- process_image: Event Grid BlobCreated trigger. Checks the image format,
  asks the vision API for a caption and tags, and posts the resulting
  record to the SPARQL metadata store.
- health: Deployment check (imports + configuration).

Failures are re-raised so the invocation is reported as failed; Event Grid
owns retry and dead-lettering.
"""

import logging
import threading

import azure.functions as func

# Lazy imports to avoid startup failures - these are imported inside functions
# from image_ingest.config import PipelineConfig
# from image_ingest.pipeline import ImagePipeline
# from image_ingest.trigger import parse_blob_created

app = func.FunctionApp()

# Built on first invocation and reused for the worker's lifetime
_pipeline = None
_pipeline_lock = threading.Lock()


def _get_pipeline():
    """Get or create the pipeline (and its HTTP session)."""
    global _pipeline

    if _pipeline is None:
        with _pipeline_lock:
            if _pipeline is None:
                from image_ingest.config import PipelineConfig
                from image_ingest.pipeline import ImagePipeline

                _pipeline = ImagePipeline(PipelineConfig.from_env())
    return _pipeline


@app.function_name(name="health")
@app.route(route="health", auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint to verify function deployment.

    Reports which dependencies import and whether the application
    settings pass validation. Never echoes setting values.
    """
    import sys

    import_status = {}

    modules_to_test = [
        ("requests", "requests - HTTP client"),
        ("dotenv", "python-dotenv - local settings"),
        ("image_ingest", "image_ingest - pipeline package"),
    ]

    for module_name, description in modules_to_test:
        try:
            __import__(module_name)
            import_status[module_name] = "OK"
        except ImportError as e:
            import_status[module_name] = f"FAILED: {e}"

    config_status = "OK"
    if import_status.get("image_ingest") == "OK":
        from image_ingest.config import ConfigurationError, PipelineConfig

        try:
            PipelineConfig.from_env()
        except ConfigurationError as e:
            config_status = f"FAILED: {e}"
    else:
        config_status = "SKIPPED"

    lines = [
        "Image Metadata Ingest - Health Check",
        "=" * 40,
        f"Python version: {sys.version}",
        f"Platform: {sys.platform}",
        "",
        "Import Status:",
    ]

    all_ok = config_status == "OK"
    for module_name, status in import_status.items():
        lines.append(f"  {module_name}: {status}")
        if status != "OK":
            all_ok = False

    lines.append("")
    lines.append(f"Configuration: {config_status}")
    lines.append("")
    lines.append(f"Overall: {'HEALTHY' if all_ok else 'UNHEALTHY - check above'}")

    return func.HttpResponse(
        "\n".join(lines),
        status_code=200 if all_ok else 500,
        mimetype="text/plain",
    )


@app.function_name(name="process_image")
@app.event_grid_trigger(arg_name="event")
@app.blob_input(
    arg_name="input_blob",
    path="{data.url}",
    connection="IMAGE_STORAGE_CONNECTION",
)
def process_image(event: func.EventGridEvent, input_blob: func.InputStream) -> None:
    """Analyze an uploaded image and publish its metadata.

    Args:
        event: Microsoft.Storage.BlobCreated event
        input_blob: Content of the created blob (None if it could not be read)
    """
    from image_ingest.logging_utils import structured_logger
    from image_ingest.trigger import parse_blob_created

    try:
        blob_event = parse_blob_created(event.get_json())
        structured_logger.info(
            "trigger",
            "BlobCreated event received",
            event_id=event.id,
            event_type=event.event_type,
            blob_url=blob_event.url,
        )

        outcome = _get_pipeline().run(blob_event, input_blob)
        outcome.raise_for_failure()

    except Exception as e:
        logging.error(f"Processing failed: {e!s}", exc_info=True)
        # Re-raise to let the platform record the failure and redeliver
        raise
