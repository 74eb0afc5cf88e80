# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

This module provides HS256 token generation and validation for administrator
sessions, validation of citizen-side access tokens, and bcrypt password
hashing.
"""

import os
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from opentelemetry import trace
import logging

from domain.authorization import ADMIN_TOKEN_TYPE, REFRESH_TOKEN_KIND
from models.entities import Administrator

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when a token cannot be issued."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


class AuthService:
    """
    JWT authentication service with HS256 signing and bcrypt password hashing.

    Admin tokens and user access tokens are signed with separate secrets so a
    citizen token can never pass the admin guard.
    """

    algorithm = "HS256"

    def __init__(
        self,
        access_secret: Optional[str] = None,
        admin_secret: Optional[str] = None,
        admin_token_expire_minutes: int = 15,
        refresh_secret: Optional[str] = None,
        refresh_token_expire_days: int = 7
    ):
        """
        Initialize the authentication service.

        Args:
            access_secret: Secret verifying citizen-side access tokens
            admin_secret: Secret signing and verifying admin tokens
            admin_token_expire_minutes: Admin token lifetime
            refresh_secret: Secret signing admin refresh tokens, defaults to the admin secret
            refresh_token_expire_days: Admin refresh token lifetime
        """
        self.access_secret = access_secret or os.getenv("JWT_ACCESS_SECRET")
        self.admin_secret = admin_secret or os.getenv("ADMIN_JWT_SECRET") or self.access_secret
        self.admin_token_expire_minutes = admin_token_expire_minutes
        self.refresh_secret = refresh_secret or os.getenv("ADMIN_REFRESH_JWT_SECRET") or self.admin_secret
        self.refresh_token_expire_days = refresh_token_expire_days

        if not self.access_secret or not self.admin_secret:
            raise ValueError("JWT_ACCESS_SECRET (and optionally ADMIN_JWT_SECRET) must be configured")

        if self.admin_secret == self.access_secret:
            logger.warning("ADMIN_JWT_SECRET not set, admin tokens share the access token secret")

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt with salt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        with tracer.start_as_current_span("auth.hash_password") as span:
            span.set_attribute("auth.operation", "hash_password")

            salt = bcrypt.gensalt(rounds=12)
            hashed = bcrypt.hashpw(password.encode('utf-8'), salt)

            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: Optional[str]) -> bool:
        """
        Verify a password against its hash.

        Args:
            password: Plain text password to verify
            hashed_password: Stored hashed password

        Returns:
            True if password matches, False otherwise
        """
        with tracer.start_as_current_span("auth.verify_password") as span:
            span.set_attribute("auth.operation", "verify_password")

            if not hashed_password:
                span.set_attribute("auth.verification_result", "failed")
                return False

            try:
                result = bcrypt.checkpw(
                    password.encode('utf-8'),
                    hashed_password.encode('utf-8')
                )

                span.set_attribute("auth.verification_result", "success" if result else "failed")
                return result
            except ValueError as e:
                # Malformed stored hash
                span.set_attribute("auth.verification_result", "error")
                logger.error(f"Password verification error: {str(e)}")
                return False

    def generate_admin_token(self, admin: Administrator) -> Dict[str, Any]:
        """
        Generate an admin access token.

        Args:
            admin: Administrator to issue the token for

        Returns:
            Dictionary containing access_token and metadata
        """
        with tracer.start_as_current_span("auth.generate_admin_token") as span:
            span.set_attributes({
                "auth.operation": "generate_admin_token",
                "admin.id": admin.id
            })

            now = datetime.now(timezone.utc)
            expires_at = now + timedelta(minutes=self.admin_token_expire_minutes)

            payload = {
                "sub": admin.id,
                "role": admin.role,
                "typ": ADMIN_TOKEN_TYPE,
                "iat": now,
                "exp": expires_at
            }

            try:
                token = jwt.encode(payload, self.admin_secret, algorithm=self.algorithm)
            except jwt.PyJWTError as e:
                logger.error(f"Admin token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate token: {str(e)}")

            logger.info(
                "Admin token generated",
                extra={"admin_id": admin.id, "expires_at": expires_at.isoformat()}
            )

            return {
                "access_token": token,
                "token_type": "Bearer",
                "expires_in": self.admin_token_expire_minutes * 60
            }

    def generate_admin_tokens(self, admin: Administrator) -> Dict[str, Any]:
        """
        Generate an admin access token and a longer-lived refresh token.

        Args:
            admin: Administrator to issue the tokens for

        Returns:
            Access token dictionary extended with refresh_token and refresh_expires_in
        """
        with tracer.start_as_current_span("auth.generate_admin_tokens") as span:
            span.set_attributes({
                "auth.operation": "generate_admin_tokens",
                "admin.id": admin.id
            })

            tokens = self.generate_admin_token(admin)

            now = datetime.now(timezone.utc)
            refresh_payload = {
                "sub": admin.id,
                "role": admin.role,
                "typ": ADMIN_TOKEN_TYPE,
                "tok": REFRESH_TOKEN_KIND,
                "iat": now,
                "exp": now + timedelta(days=self.refresh_token_expire_days)
            }

            try:
                tokens["refresh_token"] = jwt.encode(refresh_payload, self.refresh_secret, algorithm=self.algorithm)
            except jwt.PyJWTError as e:
                logger.error(f"Admin refresh token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate refresh token: {str(e)}")

            tokens["refresh_expires_in"] = self.refresh_token_expire_days * 24 * 3600
            return tokens

    def _decode(self, token: str, secret: str, span) -> Dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"verify_exp": True}
            )
            span.set_attribute("auth.validation_result", "success")
            return payload

        except jwt.ExpiredSignatureError:
            span.set_attribute("auth.validation_result", "expired")
            logger.warning("Token validation failed: token expired")
            raise TokenValidationError("Token has expired")

        except jwt.InvalidTokenError as e:
            span.set_attribute("auth.validation_result", "invalid")
            logger.warning(f"Token validation failed: {str(e)}")
            raise TokenValidationError(f"Invalid token: {str(e)}")

    def validate_admin_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry of an admin token.

        Claim checks (token type, subject) are left to the authorization layer
        so a valid token of the wrong type can be reported as forbidden.

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_admin_token") as span:
            span.set_attribute("auth.operation", "validate_admin_token")
            return self._decode(token, self.admin_secret, span)

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate and decode a citizen-side access token.

        Args:
            token: JWT token string to validate

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid, expired or has no subject
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.operation", "validate_token")

            payload = self._decode(token, self.access_secret, span)

            if not (payload.get("userId") or payload.get("sub")):
                raise TokenValidationError("Token has no subject")

            return payload

    def validate_admin_refresh_token(self, token: str) -> Dict[str, Any]:
        """
        Verify signature and expiry of an admin refresh token.

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_admin_refresh_token") as span:
            span.set_attribute("auth.operation", "validate_admin_refresh_token")
            return self._decode(token, self.refresh_secret, span)
