"""
Text similarity between error messages and the distance matrix fed to the layout engine.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.similarity.distance import (
    Comparable,
    ErrorMessageComparable,
    distance_matrix,
    levenshtein,
    similarity,
)

__all__ = ["Comparable", "ErrorMessageComparable", "distance_matrix", "levenshtein", "similarity"]
