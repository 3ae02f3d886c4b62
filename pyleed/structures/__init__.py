# -*- coding: utf-8 -*-
"""A module for holding data structures and any associated code.

The `pyleed.structures` module contains all generic data structure classes,
i.e. those python classes which act primarily as data containers.

All data structure classes are directly accessible from the top level PyLEED
namespace, e.g.

.. code-block:: python

    # Use this
    from pyleed import PhaseShiftRepository
    # Rather than this
    from pyleed.structures.repository import PhaseShiftRepository

"""
