"""
Nonprofit document storage.

Documents uploaded today are written to UPLOAD_FOLDER and referenced by path.
Older rows still carry their bytes in the `file_data` column; reads fall back
to that blob only when no path is recorded.
"""
import os
import uuid
from collections import namedtuple
from datetime import datetime, timezone

from flask import current_app
from werkzeug.utils import secure_filename

from errors import DocumentNotFound, FileMissing, FileTooLarge, NoFileData, ValidationError
from models import NonprofitDocument, db

ALLOWED_DOCUMENT_TYPES = ('application/pdf', 'image/png', 'image/jpeg', 'image/jpg')

ResolvedDocument = namedtuple('ResolvedDocument', ['content', 'mime_type', 'file_name'])


def read_document_content(document):
    """ Filesystem path first, legacy blob second. Raises a NotFound sub-kind otherwise. """
    if document.file_path:
        try:
            with open(document.file_path, 'rb') as fh:
                return fh.read()
        except OSError as e:
            current_app.logger.warning(f"⚠️ Document {document.id} missing on disk ({document.file_path}): {e}")
            raise FileMissing()

    if document.file_data is not None:
        return bytes(document.file_data)

    raise NoFileData()


def resolve_document(document_id):
    if not document_id:
        raise ValidationError('Document ID is required')

    document = db.session.get(NonprofitDocument, document_id)
    if document is None:
        raise DocumentNotFound()

    content = read_document_content(document)
    return ResolvedDocument(content, document.file_type, document.file_name)


def content_disposition(file_name):
    return f'attachment; filename="{file_name}"'


def validate_upload(file_storage, content_length):
    if file_storage.mimetype not in ALLOWED_DOCUMENT_TYPES:
        raise ValidationError('Invalid file type. Please upload a PDF or image file.')

    if content_length > current_app.config['MAX_DOCUMENT_BYTES']:
        raise FileTooLarge()


def store_upload(file_storage, content):
    """ Writes the bytes under UPLOAD_FOLDER with a collision-free name and returns the path. """
    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)

    safe_name = secure_filename(file_storage.filename) or 'document'
    path = os.path.join(folder, f"{uuid.uuid4().hex}_{safe_name}")
    with open(path, 'wb') as fh:
        fh.write(content)
    return path


def discard_file(path):
    try:
        os.remove(path)
    except OSError as e:
        current_app.logger.warning(f"⚠️ Could not remove stored document {path}: {e}")


def replace_nonprofit_document(nonprofit, file_storage):
    """
    Saves a new upload for `nonprofit` and points its document record at it.
    The legacy blob is dropped and the approval goes back to pending.
    The stored file is removed again if the commit fails; the previous
    upload is removed once the commit succeeds.
    """
    if file_storage is None or not file_storage.filename:
        raise ValidationError('No file provided')

    # One byte past the limit is enough to reject the upload
    content = file_storage.read(current_app.config['MAX_DOCUMENT_BYTES'] + 1)
    validate_upload(file_storage, len(content))

    path = store_upload(file_storage, content)

    document = nonprofit.nonprofit_document
    if document is None:
        document = NonprofitDocument(file_name=file_storage.filename, file_type=file_storage.mimetype)
        db.session.add(document)
        nonprofit.nonprofit_document = document

    old_path = document.file_path

    document.file_name = file_storage.filename
    document.file_type = file_storage.mimetype
    document.file_path = path
    document.file_data = None
    document.uploaded_at = datetime.now(timezone.utc)

    nonprofit.nonprofit_document_approval = None
    try:
        db.session.commit()
    except Exception:
        discard_file(path)
        raise

    if old_path and is_managed_upload(old_path):
        discard_file(old_path)
    return document


def is_managed_upload(path):
    """ Only files under UPLOAD_FOLDER are ours to delete. """
    folder = os.path.abspath(current_app.config['UPLOAD_FOLDER'])
    return os.path.commonpath([folder, os.path.abspath(path)]) == folder
