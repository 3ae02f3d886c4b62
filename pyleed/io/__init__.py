# -*- coding: utf-8 -*-
"""Readers and writers for the file formats used by PyLEED."""
