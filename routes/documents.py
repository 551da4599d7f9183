import base64
from flask import Blueprint, request, jsonify, Response, g
from models import db, Nonprofit, NonprofitDocument
from documents import resolve_document, read_document_content, content_disposition, replace_nonprofit_document
from errors import NotFound
from utils import role_required, handle_upstream_errors

documents_bp = Blueprint('documents', __name__)


# ==========================================
#  1. DOWNLOAD (Admin vetting)
# ==========================================
@documents_bp.route('/api/nonprofit-documents/download', methods=['GET'])
@handle_upstream_errors('Error downloading document')
@role_required('ADMIN')
def download_document():
    """
    Streams a nonprofit's registration document back as an attachment.
    Usage: /api/nonprofit-documents/download?id=<document id>
    """
    resolved = resolve_document(request.args.get('id'))

    return Response(
        resolved.content,
        status=200,
        headers={
            'Content-Type': resolved.mime_type,
            'Content-Disposition': content_disposition(resolved.file_name),
            'Content-Length': str(len(resolved.content)),
        }
    )


# ==========================================
#  2. LIST DOCUMENTS
# ==========================================
@documents_bp.route('/api/nonprofit-documents', methods=['GET'])
@handle_upstream_errors('Error fetching documents')
@role_required('ADMIN')
def list_documents():
    include_file_data = request.args.get('includeFileData') == 'true'

    documents = NonprofitDocument.query.order_by(NonprofitDocument.uploaded_at.desc()).all()
    if not documents:
        raise NotFound('No documents found')

    results = []
    for doc in documents:
        item = {
            'id': doc.id,
            'fileName': doc.file_name,
            'fileType': doc.file_type,
            'uploadedAt': doc.uploaded_at.isoformat() if doc.uploaded_at else None,
            'nonprofit': {
                'id': doc.nonprofit.id,
                'name': doc.nonprofit.name,
                'organizationType': doc.nonprofit.organization_type,
            } if doc.nonprofit else None,
        }
        if include_file_data:
            try:
                item['fileData'] = base64.b64encode(read_document_content(doc)).decode('ascii')
            except NotFound:
                item['fileData'] = None
        results.append(item)

    return jsonify(results), 200


# ==========================================
#  3. REPLACE DOCUMENT (Nonprofit re-upload)
# ==========================================
@documents_bp.route('/api/nonprofit-documents', methods=['PATCH'])
@handle_upstream_errors('Error updating document')
@role_required('NONPROFIT')
def update_document():
    """
    Nonprofit uploads a new registration document (multipart field 'file').
    The approval goes back to pending so an admin reviews it again.
    """
    user = g.current_user
    nonprofit = db.session.get(Nonprofit, user.nonprofit_id) if user.nonprofit_id else None
    if not nonprofit:
        raise NotFound('Nonprofit not found')

    document = replace_nonprofit_document(nonprofit, request.files.get('file'))

    return jsonify({
        'id': nonprofit.id,
        'name': nonprofit.name,
        'nonprofitDocumentApproval': nonprofit.nonprofit_document_approval,
        'nonprofitDocument': {
            'id': document.id,
            'fileName': document.file_name,
            'fileType': document.file_type,
            'uploadedAt': document.uploaded_at.isoformat(),
        }
    }), 200
