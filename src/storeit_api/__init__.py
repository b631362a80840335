"""StoreIt Files API: personal file storage on S3, DynamoDB and Cognito."""
