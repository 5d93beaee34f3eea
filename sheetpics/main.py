"""
sheetpics - Excel Image Extractor
FastAPI application that pulls images out of .xlsx workbooks
"""
import io
import logging
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from . import __version__
from .config import CORS_ORIGINS, LOG_LEVEL
from .errors import ProcessingError
from .excel_processor import process_workbook
from .security import ProcessingRequest, validate_upload

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="sheetpics",
    description="Extract, rename and compress images from Excel files",
    version=__version__,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ProcessingError)
async def processing_error_handler(request: Request, exc: ProcessingError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.get("/health")
def health_check():
    """Simple health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.post("/api/process")
async def process_file(
    preview: Optional[str] = None,
    file: Optional[UploadFile] = File(None),
    nameMapping: Optional[str] = Form(None),
):
    """Extract images from an uploaded workbook as a ZIP, or as thumbnails with ?preview=1"""
    logger.info("POST /api/process - start")
    options = ProcessingRequest(preview=preview == "1", name_mapping=nameMapping)

    content = await file.read() if file is not None else None
    xlsx_bytes = validate_upload(file.filename if file is not None else None, content)
    logger.info("File %s read, size: %d", file.filename, len(xlsx_bytes))

    try:
        result = await process_workbook(
            xlsx_bytes,
            preview=options.preview,
            name_mapping=options.effective_mapping(),
        )
    except ProcessingError:
        raise
    except Exception:
        logger.exception("Error in POST /api/process")
        return JSONResponse({"error": "Processing failed"}, status_code=500)

    if options.preview:
        return {"images": [image._asdict() for image in result.previews]}

    headers = {
        "Content-Disposition": "attachment; filename=images.zip",
        "X-Images-Found": str(result.images_found),
        "X-Images-Skipped": str(result.skipped),
    }
    return StreamingResponse(io.BytesIO(result.archive), media_type="application/zip", headers=headers)


@app.get("/api/process")
def process_method_not_allowed():
    return JSONResponse({"error": "Method Not Allowed"}, status_code=405)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("sheetpics.main:app", host="0.0.0.0", port=8000, reload=True)
