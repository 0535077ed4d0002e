# -*- coding: utf-8 -*-
# test_results.py: Unit tests for result coercion

import unittest
from decimal import Decimal

from plugins.common.errors import ValueCoercionError
from plugins.common.results import ScalarKind, TypedScalar, coerce_by_vartype, coerce_scalar


class TestCoerceByVartype(unittest.TestCase):
    def test_integer(self):
        self.assertEqual(coerce_by_vartype('42', 'integer'), TypedScalar(ScalarKind.UNSIGNED, 42))

    def test_real(self):
        result = coerce_by_vartype('3.14', 'real')
        self.assertIs(result.kind, ScalarKind.FLOAT)
        self.assertAlmostEqual(result.value, 3.14)

    def test_bool_passes_through(self):
        self.assertEqual(coerce_by_vartype('on', 'bool'), TypedScalar(ScalarKind.STRING, 'on'))

    def test_enum_and_string_pass_through(self):
        self.assertEqual(coerce_by_vartype('replica', 'enum').value, 'replica')
        self.assertEqual(coerce_by_vartype(' UTF8 ', 'string').value, ' UTF8 ')

    def test_malformed_integer_raises(self):
        with self.assertRaises(ValueCoercionError):
            coerce_by_vartype('12abc', 'integer')

    def test_negative_integer_raises(self):
        with self.assertRaises(ValueCoercionError):
            coerce_by_vartype('-1', 'integer')

    def test_negative_real_is_kept(self):
        self.assertEqual(coerce_by_vartype('-1', 'real'), TypedScalar(ScalarKind.FLOAT, -1.0))


class TestCoerceScalar(unittest.TestCase):
    def test_driver_types(self):
        self.assertEqual(coerce_scalar(Decimal('24576'), ScalarKind.UNSIGNED).value, 24576)
        self.assertEqual(coerce_scalar(7, ScalarKind.UNSIGNED).value, 7)
        self.assertEqual(coerce_scalar(Decimal('50.5'), ScalarKind.FLOAT).value, 50.5)

    def test_numeric_text(self):
        self.assertEqual(coerce_scalar('1200.0', ScalarKind.UNSIGNED).value, 1200)
        self.assertEqual(coerce_scalar('1e3', ScalarKind.UNSIGNED).value, 1000)

    def test_null_is_zero(self):
        self.assertEqual(coerce_scalar(None, ScalarKind.UNSIGNED).value, 0)
        self.assertEqual(coerce_scalar(None, ScalarKind.FLOAT).value, 0.0)
        self.assertEqual(coerce_scalar(None, ScalarKind.STRING).value, '')

    def test_negative_unsigned_raises(self):
        for value in (-1, Decimal('-1'), '-1', '-1.0'):
            with self.assertRaises(ValueCoercionError):
                coerce_scalar(value, ScalarKind.UNSIGNED)
        self.assertEqual(coerce_scalar(0, ScalarKind.UNSIGNED).value, 0)

    def test_malformed_float_raises(self):
        with self.assertRaises(ValueCoercionError):
            coerce_scalar('fast', ScalarKind.FLOAT)


class TestTypedScalar(unittest.TestCase):
    def test_format(self):
        self.assertEqual(TypedScalar(ScalarKind.UNSIGNED, 8192).format(), '8192')
        self.assertEqual(TypedScalar(ScalarKind.FLOAT, 99.5).format(), '99.500000')
        self.assertEqual(TypedScalar(ScalarKind.STRING, 'on').format(), 'on')

    def test_undefined(self):
        undefined = TypedScalar.undefined()
        self.assertFalse(undefined.is_defined)
        self.assertIs(undefined.kind, ScalarKind.FLOAT)
        self.assertEqual(undefined.format(), '')


if __name__ == '__main__':
    unittest.main()
