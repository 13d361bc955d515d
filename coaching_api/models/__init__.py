# Models package - database models
from coaching_api.models.user import User, Organization
from coaching_api.models.payment import Payment
from coaching_api.models.session import CoachingSession
from coaching_api.models.goal import Goal
from coaching_api.models.activity import Activity
