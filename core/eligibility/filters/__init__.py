from core.eligibility.filters.academic import filter_academic
from core.eligibility.filters.demographic import filter_demographic
from core.eligibility.filters.major_field import filter_major_field
from core.eligibility.filters.experience import filter_experience
from core.eligibility.filters.financial import filter_financial
from core.eligibility.filters.special import filter_special

__all__ = [
    'filter_academic',
    'filter_demographic',
    'filter_major_field',
    'filter_experience',
    'filter_financial',
    'filter_special',
]
