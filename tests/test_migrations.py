"""
Tests that the committed migrations describe the current models.
"""

from io import StringIO

from django.core.management import call_command
from django.test import TestCase


class MigrationStateTest(TestCase):
    def test_models_have_no_pending_changes(self):
        out = StringIO()
        try:
            call_command('makemigrations', 'core', '--check', '--dry-run', stdout=out)
        except SystemExit:
            self.fail(f'Models and migrations differ:\n{out.getvalue()}')
