#!/usr/bin/env python3

from flask import Flask, request, jsonify
from flask_cors import CORS
import os
import uuid
import logging
from werkzeug.utils import secure_filename
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from mmr_processor.config.config_manager import ConfigManager
from mmr_processor.exceptions import (
    AuthenticationError,
    BatchSizeError,
    FileValidationError,
    InvalidJobStateError,
    JobAccessDeniedError,
    JobNotFoundError
)
from mmr_processor.jobs import (
    InMemoryJobStore,
    JobQueue,
    JobStore,
    JobTracker,
    MMRService,
    MMRWorker,
    SQLiteJobStore
)
from mmr_processor.models.api_models import (
    BatchJobEntry,
    JobActionResponse,
    JobListRequest,
    JobListResponse,
    JobStatusResponse,
    ParseNowResponse,
    ProcessBatchResponse,
    ProcessFileResponse
)
from mmr_processor.models.config_models import (
    ConfigUpdateRequest,
    ConfigInquiryResponse,
    ConfigUpdateResponse
)
from mmr_processor.models.job_models import FileSubmission
from mmr_processor.processors.mmr_processor import MMRProcessor

USER_HEADER = 'X-User-Id'

STATUS_CODES = [
    (AuthenticationError, 401),
    (JobAccessDeniedError, 403),
    (JobNotFoundError, 404),
    (InvalidJobStateError, 409),
    (FileValidationError, 400),
    (ValidationError, 400),
    (ValueError, 400),
]


class App:
    """HTTP surface of the MMR processor: uploads, job status and configuration"""

    def __init__(self, config_manager: Optional[ConfigManager] = None, store: Optional[JobStore] = None,
                 db_path: Optional[str] = None, start_workers: bool = True):
        self.app = Flask(__name__)
        CORS(self.app)
        self.logger = logging.getLogger(self.__class__.__name__)

        # Configuration manager
        self.config_manager = config_manager or ConfigManager()
        config = self.config_manager.get_config()

        # Job records: explicit store, sqlite file, or process memory
        if store is None:
            if db_path:
                os.makedirs(Path(db_path).parent, exist_ok=True)
                store = SQLiteJobStore(db_path, ttl_seconds=config.jobs.ttl_seconds)
            else:
                store = InMemoryJobStore(ttl_seconds=config.jobs.ttl_seconds)
        self.store = store

        self.processor = MMRProcessor(config)
        self.tracker = JobTracker(self.store, config.jobs)
        self.worker = MMRWorker(self.tracker, self.processor, config.queue)
        self.job_queue = JobQueue(self.worker.process_job, config.queue)
        self.service = MMRService(self.tracker, self.job_queue, self.processor, config.ingress)

        if config.ingress.upload_folder:
            os.makedirs(config.ingress.upload_folder, exist_ok=True)

        if start_workers:
            self.job_queue.start()

        # Setup Flask routes
        self.setup_routes()

    def _reload_processor(self):
        """Rebuild the parse pipeline after a configuration change"""
        config = self.config_manager.get_config()
        self.processor = MMRProcessor(config)
        self.worker.processor = self.processor
        self.service.processor = self.processor
        self.service.config = config.ingress
        self.tracker.config = config.jobs
        self.logger.info("Processor reloaded with updated configuration")

    def _current_user(self) -> str:
        user_id = (request.headers.get(USER_HEADER) or '').strip()
        if not user_id:
            raise AuthenticationError(f"Missing {USER_HEADER} header")
        return user_id

    def _submission_from_upload(self, file) -> FileSubmission:
        """Read one multipart upload; saved to disk when an upload folder is configured"""
        file_name = secure_filename(file.filename or '')
        if not file_name:
            raise FileValidationError("No file uploaded")

        upload_folder = self.service.config.upload_folder
        if upload_folder:
            filepath = os.path.join(upload_folder, f"{uuid.uuid4().hex[:8]}_{file_name}")
            file.save(filepath)
            return FileSubmission(file_name=file_name, file_path=filepath,
                                  upload_id=request.form.get('upload_id'))

        return FileSubmission(file_name=file_name, content=file.read(),
                              upload_id=request.form.get('upload_id'))

    def _error_response(self, e: Exception):
        for error_type, status in STATUS_CODES:
            if isinstance(e, error_type):
                self.logger.warning(f"{request.method} {request.path} rejected ({status}): {e}")
                return jsonify({'success': False, 'error': str(e)}), status
        self.logger.error(f"Error handling {request.method} {request.path}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': str(e)}), 500

    def setup_routes(self):
        """Setup Flask routes"""

        # ========== MMR PROCESSING ROUTES ==========

        @self.app.route('/api/mmr/process', methods=['POST'])
        def process_file_route():
            """Queue one uploaded workbook for parsing"""
            try:
                user_id = self._current_user()
                if 'file' not in request.files:
                    raise FileValidationError("No file uploaded")

                submission = self._submission_from_upload(request.files['file'])
                job = self.service.process_file(user_id, submission)

                return ProcessFileResponse(
                    success=True,
                    job_id=job.job_id,
                    status=job.status,
                    message=f"File {job.file_name} queued for processing"
                ).model_dump(mode='json'), 202

            except Exception as e:
                return self._error_response(e)

        @self.app.route('/api/mmr/batch', methods=['POST'])
        def process_batch_route():
            """Queue several workbooks; the whole batch is rejected if any file is invalid"""
            try:
                user_id = self._current_user()
                files = request.files.getlist('files')
                if not files:
                    raise FileValidationError("No files uploaded")
                if len(files) > self.service.config.max_batch_size:
                    raise BatchSizeError(
                        f"Batch of {len(files)} files exceeds the limit of {self.service.config.max_batch_size}"
                    )

                submissions: List[FileSubmission] = [self._submission_from_upload(f) for f in files]
                jobs = self.service.process_batch(user_id, submissions)

                return ProcessBatchResponse(
                    success=True,
                    jobs=[BatchJobEntry(job_id=job.job_id, file_name=job.file_name) for job in jobs],
                    count=len(jobs)
                ).model_dump(mode='json'), 202

            except Exception as e:
                return self._error_response(e)

        @self.app.route('/api/mmr/parse', methods=['POST'])
        def parse_now_route():
            """Parse one workbook synchronously and return the full result"""
            try:
                self._current_user()
                if 'file' not in request.files:
                    raise FileValidationError("No file uploaded")

                submission = self._submission_from_upload(request.files['file'])
                result = self.service.parse_now(submission)

                return ParseNowResponse(
                    success=result.success,
                    result=result
                ).model_dump(mode='json', exclude_none=True)

            except Exception as e:
                return self._error_response(e)

        # ========== JOB ROUTES ==========

        @self.app.route('/api/mmr/jobs/<job_id>', methods=['GET'])
        def job_status_route(job_id):
            """Status, progress and result of one job"""
            try:
                user_id = self._current_user()
                job = self.service.get_job_status(job_id, user_id)
                return JobStatusResponse(success=True, job=job).model_dump(mode='json')

            except Exception as e:
                return self._error_response(e)

        @self.app.route('/api/mmr/jobs', methods=['GET'])
        def list_jobs_route():
            """Caller's jobs, newest first, optionally filtered by status"""
            try:
                user_id = self._current_user()
                query = JobListRequest(**request.args.to_dict())

                if query.status is not None:
                    matching = self.service.get_jobs_by_status(user_id, query.status)
                    jobs = matching[query.offset:query.offset + query.limit]
                else:
                    jobs = self.service.get_user_jobs(user_id, limit=query.limit, offset=query.offset)

                return JobListResponse(
                    success=True,
                    jobs=jobs,
                    count=len(jobs),
                    limit=query.limit,
                    offset=query.offset
                ).model_dump(mode='json')

            except Exception as e:
                return self._error_response(e)

        @self.app.route('/api/mmr/jobs/<job_id>/cancel', methods=['POST'])
        def cancel_job_route(job_id):
            """Cancel a pending or running job"""
            try:
                user_id = self._current_user()
                self.service.cancel_job(job_id, user_id)
                return JobActionResponse(
                    success=True,
                    job_id=job_id,
                    message="Job cancelled"
                ).model_dump(mode='json')

            except Exception as e:
                return self._error_response(e)

        @self.app.route('/api/mmr/jobs/<job_id>', methods=['DELETE'])
        def delete_job_route(job_id):
            """Remove a job record"""
            try:
                user_id = self._current_user()
                self.service.delete_job(job_id, user_id)
                return JobActionResponse(
                    success=True,
                    job_id=job_id,
                    message="Job deleted"
                ).model_dump(mode='json')

            except Exception as e:
                return self._error_response(e)

        # ========== CONFIGURATION ROUTES ==========

        @self.app.route('/api/config/inquiry', methods=['GET'])
        def config_inquiry_route():
            """Get current processor configuration"""
            try:
                return ConfigInquiryResponse(
                    success=True,
                    config=self.config_manager.get_config()
                ).model_dump(mode='json')

            except Exception as e:
                self.logger.error(f"Error getting config: {e}", exc_info=True)
                return ConfigInquiryResponse(
                    success=False,
                    error=str(e)
                ).model_dump(mode='json'), 500

        @self.app.route('/api/config/update', methods=['POST'])
        def config_update_route():
            """Update one configuration section"""
            try:
                data = request.get_json(silent=True) or {}

                update_request = ConfigUpdateRequest(**data)
                self.config_manager.update_config(update_request)
                self._reload_processor()

                return ConfigUpdateResponse(
                    success=True,
                    message="Configuration updated successfully",
                    updated_section=update_request.section.value
                ).model_dump(mode='json')

            except (ValidationError, ValueError) as e:
                self.logger.warning(f"Rejected config update: {e}")
                return ConfigUpdateResponse(
                    success=False,
                    message="Configuration update failed",
                    error=str(e)
                ).model_dump(mode='json'), 400
            except Exception as e:
                self.logger.error(f"Error updating config: {e}", exc_info=True)
                return ConfigUpdateResponse(
                    success=False,
                    message="Configuration update failed",
                    error=str(e)
                ).model_dump(mode='json'), 500

        @self.app.route('/api/config/reset', methods=['POST'])
        def config_reset_route():
            """Restore the default configuration"""
            try:
                self.config_manager.reset_to_defaults()
                self._reload_processor()
                return ConfigUpdateResponse(
                    success=True,
                    message="Configuration reset to defaults"
                ).model_dump(mode='json')

            except Exception as e:
                self.logger.error(f"Error resetting config: {e}", exc_info=True)
                return ConfigUpdateResponse(
                    success=False,
                    message="Configuration reset failed",
                    error=str(e)
                ).model_dump(mode='json'), 500

    def run(self, host: str = 'localhost', port: int = 5000, debug: bool = True):
        """Run the Flask application"""
        self.logger.info(f"MMR Processing Server starting on http://{host}:{port}")
        try:
            self.app.run(host=host, port=port, debug=debug, use_reloader=False)
        finally:
            self.job_queue.stop(timeout=5)
