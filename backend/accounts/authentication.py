from rest_framework import authentication, exceptions


class WorkbenchSessionAuthentication(authentication.BaseAuthentication):
    """
    Authenticate with the ``wb_session`` cookie or an ``Authorization: Bearer`` token.

    ``request.auth`` is the AuthSession, which also carries the active org.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        # rest_framework.views loads this class while it is still importing
        from .services import ensure_user_memberships, get_live_session, get_session_token

        token = get_session_token(request)
        if not token:
            return None

        session = get_live_session(token)
        if session is None:
            raise exceptions.AuthenticationFailed('Invalid or expired session.')
        if not session.user.is_active:
            raise exceptions.AuthenticationFailed('User not found.')

        ensure_user_memberships(session.user)
        return session.user, session

    def authenticate_header(self, request):
        return self.keyword
