from werkzeug.utils import secure_filename

from core.imports import Blueprint, jsonify, request, current_app, jwt_required, cloudinary
from core.auth import current_user_id
from core.errors import ShopError, ValidationError

upload_bp = Blueprint('upload', __name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'webp'}
MAX_FILES = 10


def allowed_file(filename):
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def _upload_all(files):
    """Push every file to Cloudinary and return their secure URLs, in order."""
    for file in files:
        if not allowed_file(file.filename):
            raise ValidationError(f"File type not allowed for '{secure_filename(file.filename)}'")
    folder = current_app.config["CLOUDINARY_FOLDER"]
    try:
        return [cloudinary.uploader.upload(file, folder=folder).get("secure_url") for file in files]
    except cloudinary.exceptions.Error as e:
        current_app.logger.error("Cloudinary upload failed for user %s: %s", current_user_id(), e)
        raise ShopError("Upload failed", error=str(e))


@upload_bp.route('/api/upload/image', methods=['POST'])
@jwt_required()
def upload_image():
    """
    Upload one image
    ---
    tags:
      - Upload
    consumes:
      - multipart/form-data
    parameters:
      - name: file
        in: formData
        type: file
        required: true
    responses:
      201:
        description: Image stored on Cloudinary
        schema:
          type: object
          properties:
            url:
              type: string
              example: "https://res.cloudinary.com/demo/image/upload/v1690000000/products/shoe.jpg"
      400:
        description: No file or file type not allowed
      500:
        description: Upload failed
    """
    file = request.files.get('file')
    if not file or file.filename == '':
        return jsonify({"success": False, "message": "No file selected for upload"}), 400

    urls = _upload_all([file])
    return jsonify({"success": True, "url": urls[0], "urls": urls}), 201


@upload_bp.route('/api/upload/images', methods=['POST'])
@jwt_required()
def upload_images():
    """
    Upload several images
    ---
    tags:
      - Upload
    consumes:
      - multipart/form-data
    parameters:
      - name: files
        in: formData
        type: file
        required: true
        description: Up to 10 images
    responses:
      201:
        description: Images stored on Cloudinary
      400:
        description: No files, too many files or file type not allowed
      500:
        description: Upload failed
    """
    files = [f for f in request.files.getlist('files') if f and f.filename]
    if not files:
        return jsonify({"success": False, "message": "No files selected for upload"}), 400
    if len(files) > MAX_FILES:
        return jsonify({"success": False, "message": f"Maximum of {MAX_FILES} files allowed per upload."}), 400

    urls = _upload_all(files)

    current_app.logger.info("Uploaded %d images for user %s", len(urls), current_user_id())
    return jsonify({"success": True, "message": f"Uploaded {len(urls)} images", "urls": urls}), 201
