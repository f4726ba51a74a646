import hashlib
import logging
import uuid
from datetime import timedelta

import jwt
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ..models import User, Session

logger = logging.getLogger(__name__)


class AuthService:
    JWT_SECRET = getattr(settings, 'JWT_SECRET_KEY', settings.SECRET_KEY)
    JWT_ALGORITHM = getattr(settings, 'JWT_ALGORITHM', 'HS256')
    JWT_EXPIRY_DAYS = getattr(settings, 'JWT_EXPIRY_DAYS', 7)

    @classmethod
    @transaction.atomic
    def login(cls, email, password, ip_address=None, user_agent=None):
        email = (email or '').strip().lower()
        if not email or not password:
            return {'success': False, 'token': None, 'user': None, 'message': 'Email and password are required'}

        try:
            user = User.objects.select_related('company').get(email__iexact=email)
        except User.DoesNotExist:
            logger.warning(f"Login failed for unknown email {email}")
            return {'success': False, 'token': None, 'user': None, 'message': 'Invalid credentials'}

        if not user.check_password(password):
            logger.warning(f"Login failed for user {user.id}: bad password")
            return {'success': False, 'token': None, 'user': None, 'message': 'Invalid credentials'}

        if user.status == User.UserStatus.SUSPENDED or not user.company.is_active:
            return {'success': False, 'token': None, 'user': None, 'message': 'Account suspended'}

        token = cls._generate_token(user)

        Session.objects.create(
            user=user,
            ip_address=ip_address,
            user_agent=(user_agent or '')[:255] or None,
            payload=cls._digest(token)
        )

        User.objects.filter(id=user.id).update(
            last_login_at=timezone.now(),
            last_login_ip=ip_address
        )

        logger.info(f"User {user.id} logged in (company {user.company_id})")
        return {'success': True, 'token': token, 'user': user, 'message': 'Login successful'}

    @classmethod
    def logout(cls, token):
        user = cls._verify_token(token)
        if not user:
            return {'success': False, 'message': 'Invalid token'}

        Session.objects.filter(user=user, payload=cls._digest(token)).delete()
        logger.info(f"User {user.id} logged out")
        return {'success': True, 'message': 'Logged out successfully'}

    @classmethod
    def get_user_from_token(cls, token):
        return cls._verify_token(token)

    @classmethod
    def serialize_user(cls, user):
        return {
            'id': user.id,
            'first_name': user.first_name,
            'last_name': user.last_name,
            'email': user.email,
            'role': user.role,
            'status': user.status,
            'company_id': user.company_id,
            'store_id': user.store_id,
        }

    @classmethod
    def _generate_token(cls, user):
        now = timezone.now()
        payload = {
            'user_id': user.id,
            'company_id': user.company_id,
            'role': user.role,
            'exp': now + timedelta(days=cls.JWT_EXPIRY_DAYS),
            'iat': now,
            'jti': uuid.uuid4().hex,
        }
        return jwt.encode(payload, cls.JWT_SECRET, algorithm=cls.JWT_ALGORITHM)

    @classmethod
    def _verify_token(cls, token):
        try:
            payload = jwt.decode(token, cls.JWT_SECRET, algorithms=[cls.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.debug("Rejected expired token")
            return None
        except jwt.InvalidTokenError:
            logger.debug("Rejected invalid token")
            return None

        try:
            user = User.objects.select_related('company', 'store').get(id=payload.get('user_id'))
        except User.DoesNotExist:
            return None

        if user.company_id != payload.get('company_id'):
            return None

        if user.status != User.UserStatus.ACTIVE or not user.company.is_active:
            return None

        if not Session.objects.filter(user=user, payload=cls._digest(token)).exists():
            return None

        return user

    @staticmethod
    def _digest(token):
        return hashlib.sha256(token.encode()).hexdigest()
