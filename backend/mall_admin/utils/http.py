"""Request body helpers shared by the admin blueprints."""
from flask import request
from mall_admin.errors import ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('JSON object body required')
    return data


def uploaded_file_bytes(field: str = 'file') -> bytes:
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        raise ValidationError(f'file required (multipart field "{field}")')
    return upload.read()
