import time
import unittest

from core.eligibility import (
    FilterDimension,
    HardFilterConfig,
    filter_scholarships,
    filter_scholarships_with_statistics,
    get_filter_statistics,
)
from tests.factories import RUN_TODAY, make_scholarship, make_student

CONFIG = HardFilterConfig(reference_date=RUN_TODAY)


class TestFilterScholarships(unittest.TestCase):

    def setUp(self):
        self.student = make_student(gpa=3.4, state='CA', intended_major='Biology')
        self.scholarships = [
            make_scholarship('open'),
            make_scholarship('gpa', criteria={'academic': {'minGPA': 3.8}}),
            make_scholarship('state', criteria={'demographic': {'requiredState': ['CA']}}),
            make_scholarship('major', criteria={'majorField': {'excludedMajors': ['Biology']}}),
            make_scholarship('stem', criteria={'academic': {'minGPA': 3.0}, 'majorField': {'eligibleMajors': ['Biology']}}),
        ]

    def test_eligible_subset_in_input_order(self):
        eligible = filter_scholarships(self.student, self.scholarships, CONFIG)
        self.assertEqual([s.id for s in eligible], ['open', 'state', 'stem'])

    def test_deterministic(self):
        first = filter_scholarships(self.student, self.scholarships, CONFIG)
        second = filter_scholarships(self.student, self.scholarships, CONFIG)
        self.assertEqual([s.id for s in first], [s.id for s in second])

    def test_reversed_input_reverses_output(self):
        eligible = filter_scholarships(self.student, list(reversed(self.scholarships)), CONFIG)
        self.assertEqual([s.id for s in eligible], ['stem', 'state', 'open'])

    def test_statistics_flag_does_not_change_result(self):
        plain = filter_scholarships(self.student, self.scholarships, CONFIG)
        with self.assertLogs('core.eligibility.hard_filter', level='INFO'):
            logged = filter_scholarships(self.student, self.scholarships, CONFIG, include_statistics=True)
        self.assertEqual([s.id for s in plain], [s.id for s in logged])

    def test_empty_input(self):
        self.assertEqual(filter_scholarships(self.student, [], CONFIG), [])
        stats = get_filter_statistics(self.student, [], CONFIG)
        self.assertEqual(stats.total_scholarships, 0)
        self.assertEqual(stats.rejected_count, 0)


class TestFilterStatistics(unittest.TestCase):

    def test_counts_and_dimension_breakdown(self):
        student = make_student(gpa=2.5)
        scholarships = [
            make_scholarship('a'),
            make_scholarship('b', criteria={'academic': {'minGPA': 3.0}}),
            make_scholarship('c', criteria={'academic': {'minGPA': 3.5}}),
            make_scholarship('d', criteria={'financial': {'pellGrantRequired': True}}),
        ]
        eligible, stats = filter_scholarships_with_statistics(student, scholarships, CONFIG)

        self.assertEqual([s.id for s in eligible], ['a'])
        self.assertEqual(stats.total_scholarships, 4)
        self.assertEqual(stats.eligible_count, 1)
        self.assertEqual(stats.rejected_count, 3)
        self.assertEqual(stats.rejections_by_dimension[FilterDimension.ACADEMIC], 2)
        self.assertEqual(stats.rejections_by_dimension[FilterDimension.FINANCIAL], 1)
        self.assertEqual(stats.rejections_by_dimension[FilterDimension.SPECIAL], 0)
        self.assertGreaterEqual(stats.execution_time_ms, 0.0)

    def test_to_dict_lists_every_dimension(self):
        stats = get_filter_statistics(make_student(), [make_scholarship()], CONFIG)
        data = stats.to_dict()
        self.assertEqual(set(data['rejections_by_dimension']), {d.value for d in FilterDimension})
        self.assertEqual(data['eligible_count'], 1)


class TestBatchThroughput(unittest.TestCase):

    def setUp(self):
        self.student = make_student(gpa=3.0)
        self.scholarships = [
            make_scholarship(f"sch_{i}", criteria={'academic': {'minGPA': 4.0}})
            for i in range(10000)
        ]

    def test_ten_thousand_scholarships_rejected_quickly(self):
        start = time.perf_counter()
        eligible = filter_scholarships(self.student, self.scholarships, CONFIG)
        elapsed = time.perf_counter() - start

        self.assertEqual(eligible, [])
        # generous bound for shared CI runners
        self.assertLess(elapsed, 0.5)

    def test_every_rejection_is_academic(self):
        stats = get_filter_statistics(self.student, self.scholarships, CONFIG)
        self.assertEqual(stats.rejected_count, 10000)
        self.assertEqual(stats.rejections_by_dimension[FilterDimension.ACADEMIC], 10000)
        self.assertEqual(sum(stats.rejections_by_dimension.values()), 10000)


if __name__ == '__main__':
    unittest.main()
