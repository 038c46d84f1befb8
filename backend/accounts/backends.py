"""
Custom authentication backend for multi-field login.

Allows users to authenticate using any one of:
``username``, ``national_id``, ``phone_number``, or ``email``
together with their ``password``.

Registered in ``settings.AUTHENTICATION_BACKENDS`` so that Django's
``authenticate(identifier=..., password=...)`` call dispatches to it.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()


class MultiFieldAuthBackend(ModelBackend):
    """
    Authenticate against username, national_id, phone_number, or email.

    E-mail matching is case-insensitive; the other identifiers are exact.
    Permission checks are not answered here: ``User.has_perm`` delegates
    to the catalog-backed resolver.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        """
        Resolve the user by *identifier* and verify *password*.

        Parameters
        ----------
        request : HttpRequest | None
        identifier : str
            Username, national ID, phone number, or email address.
        password : str
            The raw password to verify.

        Returns
        -------
        User | None
            The authenticated user, or ``None`` on failure.
        """
        if identifier is None:
            identifier = kwargs.get(User.USERNAME_FIELD)
        if not identifier or password is None:
            return None

        identifier = identifier.strip()
        candidates = list(
            User.objects.filter(
                Q(username=identifier)
                | Q(national_id=identifier)
                | Q(phone_number=identifier)
                | Q(email__iexact=identifier)
            )[:2]
        )
        if len(candidates) != 1:
            # Run the default password hasher to mitigate timing attacks
            User().set_password(password)
            return None

        user = candidates[0]
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None

    def get_all_permissions(self, user_obj, obj=None):
        return set()

    def has_perm(self, user_obj, perm, obj=None):
        return False
