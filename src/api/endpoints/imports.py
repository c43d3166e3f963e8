import json
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, UploadFile

from src.error_handler import error_handler, error_response
from src.importers.cv_file import CvImportError, import_cv_file
from src.importers.linkedin import EXPORT_INSTRUCTIONS, is_linkedin_profile_url, map_linkedin_to_cv_data, parse_linkedin_export
from src.utils.app_config_loader import get_app_config

logger = logging.getLogger(__name__)

api = APIRouter()
imports_api = api


@api.post("/linkedin/import", tags=["Import"])
async def import_linkedin(
    url: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
):
    try:
        if file is not None:
            raw = await file.read()
            try:
                json_data = json.loads(raw.decode("utf-8-sig"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                return error_response(
                    400, "Invalid JSON file. Please ensure you uploaded a valid LinkedIn export file."
                )

            cv = map_linkedin_to_cv_data(parse_linkedin_export(json_data))
            return {
                "success": True,
                "data": cv.to_wire(),
                "source": "json_file",
                "message": "LinkedIn data imported successfully from JSON file.",
            }

        if url:
            if not is_linkedin_profile_url(url):
                return error_response(
                    400,
                    "Invalid LinkedIn profile URL. Please provide a valid LinkedIn profile link "
                    "(e.g., https://www.linkedin.com/in/username)",
                )
            # LinkedIn blocks scraping; the export file is the supported path
            return error_response(
                501,
                "Direct URL import is not currently available due to LinkedIn's restrictions. "
                "Please use the JSON file upload method.",
                fallback=EXPORT_INSTRUCTIONS,
            )

        return error_response(400, "Please provide either a LinkedIn profile URL or upload a JSON file.")
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "linkedin.import"})


@api.post("/cv/import", tags=["Import"])
async def import_cv(file: Optional[UploadFile] = File(default=None)):
    try:
        data = await file.read() if file is not None else None
        max_bytes = get_app_config().imports.max_upload_bytes
        try:
            return import_cv_file(
                file.filename if file is not None else None,
                file.content_type if file is not None else None,
                data,
                max_bytes,
            )
        except CvImportError as exc:
            return error_response(400, str(exc))
    except Exception as exc:
        return error_handler.to_response(exc, {"route": "cv.import"})
