from .core import (
    get_user as _get_user,
    public_profile as _public_profile,
    register as _register,
    resolve as _resolve,
    smart_display_name as _smart_display_name,
    update_user_profile as _update_user_profile,
    upload_profile_picture as _upload_profile_picture,
)
from .friendship import (
    accept_friend_request as _accept_friend_request,
    decline_friend_request as _decline_friend_request,
    friend_ids as _friend_ids,
    get_user_friends as _get_user_friends,
    get_user_pending_requests as _get_user_pending_requests,
    is_friend as _is_friend,
    search_by_contact as _search_by_contact,
    send_friend_request as _send_friend_request,
)
from .location import (
    effective_location as _effective_location,
    get_friend_locations as _get_friend_locations,
    set_location_visibility as _set_location_visibility,
    update_location as _update_location,
)


class UserService:
    """Service class for identity, profile, friendship and location operations."""

    resolve = staticmethod(_resolve)
    register = staticmethod(_register)
    get_user = staticmethod(_get_user)
    public_profile = staticmethod(_public_profile)
    smart_display_name = staticmethod(_smart_display_name)
    update_user_profile = staticmethod(_update_user_profile)
    upload_profile_picture = staticmethod(_upload_profile_picture)
    send_friend_request = staticmethod(_send_friend_request)
    accept_friend_request = staticmethod(_accept_friend_request)
    decline_friend_request = staticmethod(_decline_friend_request)
    search_by_contact = staticmethod(_search_by_contact)
    get_user_friends = staticmethod(_get_user_friends)
    get_user_pending_requests = staticmethod(_get_user_pending_requests)
    is_friend = staticmethod(_is_friend)
    friend_ids = staticmethod(_friend_ids)
    effective_location = staticmethod(_effective_location)
    update_location = staticmethod(_update_location)
    set_location_visibility = staticmethod(_set_location_visibility)
    get_friend_locations = staticmethod(_get_friend_locations)
