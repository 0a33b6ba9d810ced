"""Text similarity and duplicate detection for news items.

Public API:
- text.jaccard_similarity / cosine_similarity / levenshtein_similarity / ngram_similarity
- duplicates.detect_duplicate       : multi-signal pairwise duplicate classification
- duplicates.find_duplicate_groups  : O(n^2) grouping over a bounded candidate pool
- scan.scan_duplicates              : load candidates from the database and group them
"""
