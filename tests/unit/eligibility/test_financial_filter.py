import unittest

import pytest

from core.eligibility.filters import filter_financial
from core.eligibility.filters.financial import UNBOUNDED_EFC, parse_efc_max
from core.eligibility.models import (
    FailedCriterion,
    FilterDimension,
    FinancialCriteria,
    FinancialNeed,
    StudentProfile,
)


def criteria(**kwargs) -> FinancialCriteria:
    return FinancialCriteria.model_validate(kwargs)


@pytest.mark.parametrize("efc_range,expected", [
    ("5001-10000", 10000),
    ("0-5000", 5000),
    ("10000+", UNBOUNDED_EFC),
    ("7500", 7500),
    ("5000-", None),
    ("", None),
    (None, None),
    ("unknown", None),
])
def test_parse_efc_max(efc_range, expected):
    assert parse_efc_max(efc_range) == expected


class TestFinancialFilter(unittest.TestCase):

    def test_no_criteria_passes(self):
        self.assertTrue(filter_financial(StudentProfile(), None).eligible)

    def test_requires_financial_need(self):
        required = criteria(requiresFinancialNeed=True)
        self.assertTrue(filter_financial(StudentProfile(financial_need=FinancialNeed.MODERATE), required).eligible)

        low = filter_financial(StudentProfile(financial_need=FinancialNeed.LOW), required)
        self.assertEqual(
            low.failed_criteria,
            [FailedCriterion(FilterDimension.FINANCIAL, 'requiresFinancialNeed', True, 'LOW')]
        )

        missing = filter_financial(StudentProfile(), required)
        self.assertIsNone(missing.failed_criteria[0].actual)

    def test_max_efc_uses_range_upper_bound(self):
        profile = StudentProfile(efc_range="5001-10000")
        self.assertTrue(filter_financial(profile, criteria(maxEFC=10000)).eligible)

        result = filter_financial(profile, criteria(maxEFC=6000))
        self.assertEqual(result.failed_criteria[0].actual, 10000)

    def test_open_ended_efc_exceeds_any_ceiling(self):
        result = filter_financial(StudentProfile(efc_range="10000+"), criteria(maxEFC=50000))
        self.assertFalse(result.eligible)

    def test_unparseable_efc_fails_closed(self):
        result = filter_financial(StudentProfile(efc_range="5000-"), criteria(maxEFC=6000))
        self.assertIsNone(result.failed_criteria[0].actual)

    def test_pell_grant_required(self):
        required = criteria(pellGrantRequired=True)
        self.assertTrue(filter_financial(StudentProfile(pell_grant_eligible=True), required).eligible)
        self.assertIs(filter_financial(StudentProfile(pell_grant_eligible=False), required).failed_criteria[0].actual, False)
        self.assertIsNone(filter_financial(StudentProfile(), required).failed_criteria[0].actual)

    def test_financial_need_level_ordering(self):
        high = criteria(financialNeedLevel="HIGH")
        self.assertTrue(filter_financial(StudentProfile(financial_need=FinancialNeed.VERY_HIGH), high).eligible)
        self.assertTrue(filter_financial(StudentProfile(financial_need=FinancialNeed.HIGH), high).eligible)

        result = filter_financial(StudentProfile(financial_need=FinancialNeed.MODERATE), high)
        self.assertEqual(
            result.failed_criteria,
            [FailedCriterion(FilterDimension.FINANCIAL, 'financialNeedLevel', 'HIGH', 'MODERATE')]
        )

    def test_financial_need_level_missing(self):
        result = filter_financial(StudentProfile(), criteria(financialNeedLevel="LOW"))
        self.assertEqual(result.failed_criteria[0].required, 'LOW')
        self.assertIsNone(result.failed_criteria[0].actual)


if __name__ == '__main__':
    unittest.main()
