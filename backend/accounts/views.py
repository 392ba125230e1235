import logging

from django.db import transaction
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from audit.activity import log_activity
from backend.exceptions import BadRequest, Conflict, Unauthorized
from backend.payload import body_dict, ensure_string, optional_string
from billing.services import assert_can_redeem_org_member, get_org_billing_snapshot
from organizations.models import OrgMember
from organizations.services import get_redeemable_magic_link, get_system_role, memberships_for

from .models import User
from .serializers import UserSerializer
from .services import (
    AUTH_MODE,
    attach_session_cookies,
    clear_session_cookies,
    create_session,
    end_session,
    ensure_user_memberships,
    get_active_org_id,
    get_session_token,
    normalize_email,
    set_active_org_cookie,
    switch_active_org,
)

logger = logging.getLogger(__name__)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def signup_view(request):
    """
    Create a local account, its personal workspace and a session
    """
    body = body_dict(request)
    email = normalize_email(ensure_string(body.get('email'), 'email'))
    password = ensure_string(body.get('password'), 'password')

    if User.objects.filter(email=email).exists():
        raise Conflict('An account with this email already exists.')

    name = optional_string(body.get('name')) or email.split('@')[0] or 'User'
    with transaction.atomic():
        user = User.objects.create_user(username=email, email=email, password=password, name=name)
        ensure_user_memberships(user)
        session = create_session(user)

    logger.info("User %s signed up", user.pk)
    response = Response({
        'data': {
            'user': UserSerializer(user).data,
            'email_confirmed': True,
            'auth_mode': AUTH_MODE,
        }
    }, status=status.HTTP_201_CREATED)
    attach_session_cookies(response, session)
    return response


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login_view(request):
    """
    Exchange email and password for a session
    """
    body = body_dict(request)
    email = normalize_email(ensure_string(body.get('email'), 'email'))
    password = ensure_string(body.get('password'), 'password')

    user = User.objects.filter(email=email, is_active=True).first()
    if user is None or not user.check_password(password):
        raise Unauthorized('Invalid email or password.', code='invalid_credentials')

    ensure_user_memberships(user)
    session = create_session(user)
    response = Response({'data': {'user': UserSerializer(user).data, 'auth_mode': AUTH_MODE}})
    attach_session_cookies(response, session)
    return response


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def logout_view(request):
    """
    End the current session; succeeds without one as well
    """
    end_session(get_session_token(request))
    response = Response({'data': {'signed_out': True}})
    clear_session_cookies(response)
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    user = request.user
    org_id = get_active_org_id(request)
    role = get_system_role(org_id, user) if org_id else None
    payload = {
        'id': user.pk,
        'email': user.email,
        'name': user.name,
        'display_name': user.display_name,
        'role': role or OrgMember.ROLE_MEMBER,
    }
    # Both keys are kept for older clients reading ``user``
    return Response({'user': payload, 'data': payload})


def _billing_snapshot_or_none(org_id, role):
    if not org_id or not role:
        return None
    try:
        return get_org_billing_snapshot(org_id)
    except Exception:
        logger.warning("Failed to load billing snapshot for org %s; returning session without it", org_id,
                       exc_info=True)
        return None


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def session_view(request):
    """
    Signed-in user, their organizations and the active org's billing snapshot
    """
    user = request.user
    active_org_id = get_active_org_id(request)
    organizations = []
    active_role = None
    for membership in memberships_for(user):
        org = membership.org
        is_active = org.pk == active_org_id
        if is_active:
            active_role = membership.system_role
        organizations.append({
            'id': str(org.pk),
            'name': org.name,
            'slug': org.slug,
            'created_at': org.created_at,
            'system_role': membership.system_role,
            'is_active': is_active,
        })

    return Response({
        'data': {
            'user': UserSerializer(user).data,
            'auth_mode': AUTH_MODE,
            'active_org_id': str(active_org_id) if active_org_id else None,
            'organizations': organizations,
            'billing': _billing_snapshot_or_none(active_org_id, active_role),
        }
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def switch_org_view(request):
    org_id = switch_active_org(request, request.user, body_dict(request).get('org_id'))
    response = Response({'data': {'active_org_id': str(org_id)}})
    set_active_org_cookie(response, org_id)
    return response


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def redeem_magic_link_view(request):
    """
    Join an organization through an invitation link

    Unknown emails get an account, which needs a name and a password.
    """
    body = body_dict(request)
    token = optional_string(body.get('token'))
    if not token:
        raise BadRequest('Token is required.')

    magic_link = get_redeemable_magic_link(token)
    if magic_link is None:
        raise BadRequest('Invalid or expired invitation link.')

    user = User.objects.filter(email=magic_link.email).first()
    already_member = user is not None and OrgMember.objects.filter(org_id=magic_link.org_id, user=user).exists()
    if not already_member:
        assert_can_redeem_org_member(magic_link.org_id)

    with transaction.atomic():
        if user is None:
            name = optional_string(body.get('name'))
            password = optional_string(body.get('password'))
            if not name or not password:
                raise BadRequest('Name and password are required for new account.')
            user = User.objects.create_user(
                username=magic_link.email, email=magic_link.email, password=password, name=name
            )

        OrgMember.objects.get_or_create(
            org_id=magic_link.org_id,
            user=user,
            defaults={'system_role': magic_link.system_role},
        )
        magic_link.redeemed_at = timezone.now()
        magic_link.redeemed_by = user
        magic_link.save(update_fields=['redeemed_at', 'redeemed_by'])

        log_activity(
            org=magic_link.org_id,
            actor=user,
            action='joined_via_magic_link',
            target_type='org_member',
            target_id=user.pk,
            metadata={
                'invited_by': str(magic_link.invited_by_id) if magic_link.invited_by_id else None,
                'system_role': magic_link.system_role,
            },
        )
        session = create_session(user, preferred_org_id=magic_link.org_id)

    response = Response({'data': {'user': UserSerializer(user).data, 'redirect_to': '/projects'}})
    attach_session_cookies(response, session)
    return response
