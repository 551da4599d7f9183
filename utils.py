from functools import wraps
from flask import current_app, g
from flask_jwt_extended import jwt_required, get_jwt_identity
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from werkzeug.exceptions import HTTPException
from flask_mail import Message
from models import AuditLog, User, db
from extensions import mail
from errors import ApiError, AuthorizationDenied, UpstreamFailure


def role_required(*roles):
    """
    Guard for a view: valid bearer token AND the caller's role is one of `roles`.
    The resolved user is exposed as g.current_user.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            user = db.session.get(User, get_jwt_identity())
            if not user or user.role not in roles:
                raise AuthorizationDenied()
            g.current_user = user
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def handle_upstream_errors(message):
    """
    Anything that is not already an ApiError becomes UpstreamFailure(message).
    The real cause is logged, never returned to the caller.
    Sits outside role_required, so token errors pass through to the JWT loaders.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except (ApiError, JWTExtendedException, PyJWTError, HTTPException):
                raise
            except Exception as e:
                db.session.rollback()
                current_app.logger.exception(f"{message}: {e}")
                raise UpstreamFailure(message) from e
        return wrapper
    return decorator


def log_activity(user_id, action, details):
    try:
        new_log = AuditLog(user_id=user_id, action=action, details=details)
        db.session.add(new_log)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning(f"⚠️ Logging Failed: {e}") # Don't crash the request if logging fails


def send_approval_status_email(nonprofit, admin, approved):
    """ Tells every user of the nonprofit whether their registration went through. """
    recipients = [u.email for u in nonprofit.users]
    if not recipients:
        return False

    msg = Message('Nonprofit Registration Status Update',
                  recipients=recipients)

    if approved:
        outcome = 'has been APPROVED. You can now claim available products.'
    else:
        outcome = 'was not approved. Please review your registration document and upload a new one.'

    msg.body = f'''Hello {nonprofit.name},

Your nonprofit registration {outcome}

If you have questions, contact {admin.name or 'the admin team'} at {admin.email}.
'''
    try:
        mail.send(msg)
        return True
    except Exception as e:
        current_app.logger.error(f"Failed to send email: {e}")
        return False
