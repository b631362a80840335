"""
S3 blob adapter.

Object keys are `{ownerId}/{fileId}/{fileName}` for finished files and
`{ownerId}/{uploadId}/chunk_{index}` for chunks of an in-flight upload.
"""
