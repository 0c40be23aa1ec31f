from flask import Flask, request, jsonify, Blueprint, current_app
from flask_jwt_extended import (
    create_access_token, get_jwt_identity, jwt_required, JWTManager, get_jwt, verify_jwt_in_request,
    set_access_cookies, unset_jwt_cookies,
)
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, ProgrammingError, OperationalError
from flask_migrate import Migrate
from sqlalchemy import text
from flask_bcrypt import Bcrypt
from flasgger import Swagger
from flask_cors import CORS
from datetime import datetime
import secrets
import string
import cloudinary
import cloudinary.uploader
import cloudinary.exceptions
