# --- Raw directory export headers (catalog CSV) ---
COL_BUSINESS_ID = "Business Id"
COL_BUSINESS_NAME = "Business Name"
COL_DESCRIPTION = "Description"
COL_CATEGORIES = "Categories"
COL_TAGS = "Tags"
COL_LATITUDE = "Latitude"
COL_LONGITUDE = "Longitude"
COL_PRICE_LEVEL = "Price Level"
COL_VERIFIED = "Verified"
COL_SPONSORED = "Sponsored"
COL_OPEN_NOW = "Open Now"
COL_CREATED_AT = "Created At"
COL_STATUS = "Status"
COL_OWNER_ID = "Owner Id"

COL_REVIEW_ID = "Review Id"
COL_REVIEWER_ID = "Reviewer Id"
COL_REVIEW_RATING = "Review Rating"
COL_REVIEW_TITLE = "Review Title"
COL_REVIEW_CONTENT = "Review Content"
COL_REVIEW_STATUS = "Review Status"
COL_HELPFUL_COUNT = "Helpful Count"
COL_REVIEW_DATE = "Review Date"

# --- Normalized field names (internal schema) ---
F_ID = "id"
F_NAME = "name"
F_DESCRIPTION = "description"
F_CATEGORIES = "categories"
F_TAGS = "tags"
F_LAT = "lat"
F_LNG = "lng"
F_COORDINATES = "coordinates"
F_RATING = "rating"
F_OVERALL = "overall"
F_COUNT = "count"
F_PRICE_LEVEL = "price_level"
F_VERIFIED = "verified"
F_SPONSORED = "sponsored"
F_OPEN_NOW = "open_now"
F_CREATED_AT = "created_at"
F_STATUS = "status"
F_OWNER_ID = "owner_id"

F_BUSINESS_ID = "business_id"
F_AUTHOR_ID = "author_id"
F_TITLE = "title"
F_TEXT = "text"
F_HELPFUL_COUNT = "helpful_count"
F_PHOTOS = "photos"

F_FILE_HASH = "file_hash"
F_SOURCE_PATH = "source_path"
F_TOTAL_ROWS = "total_rows"
F_LOADED_ROWS = "loaded_rows"

# Separator for list-valued cells in catalog CSVs ("Hair Salon|Barber")
LIST_SEPARATOR = "|"

# Mapping raw CSV header -> normalized internal field
BUSINESS_RENAME_MAP = {
    COL_BUSINESS_ID: F_ID,
    COL_BUSINESS_NAME: F_NAME,
    COL_DESCRIPTION: F_DESCRIPTION,
    COL_CATEGORIES: F_CATEGORIES,
    COL_TAGS: F_TAGS,
    COL_LATITUDE: F_LAT,
    COL_LONGITUDE: F_LNG,
    COL_PRICE_LEVEL: F_PRICE_LEVEL,
    COL_VERIFIED: F_VERIFIED,
    COL_SPONSORED: F_SPONSORED,
    COL_OPEN_NOW: F_OPEN_NOW,
    COL_CREATED_AT: F_CREATED_AT,
    COL_STATUS: F_STATUS,
    COL_OWNER_ID: F_OWNER_ID,
}

REVIEW_RENAME_MAP = {
    COL_REVIEW_ID: F_ID,
    COL_BUSINESS_ID: F_BUSINESS_ID,
    COL_REVIEWER_ID: F_AUTHOR_ID,
    COL_REVIEW_RATING: F_RATING,
    COL_REVIEW_TITLE: F_TITLE,
    COL_REVIEW_CONTENT: F_TEXT,
    COL_REVIEW_STATUS: F_STATUS,
    COL_HELPFUL_COUNT: F_HELPFUL_COUNT,
    COL_REVIEW_DATE: F_CREATED_AT,
}

# --- Business status ---
BUSINESS_DRAFT = "draft"
BUSINESS_PUBLISHED = "published"
BUSINESS_SUSPENDED = "suspended"
BUSINESS_STATUSES = (BUSINESS_DRAFT, BUSINESS_PUBLISHED, BUSINESS_SUSPENDED)

# --- Review status ---
REVIEW_PENDING = "pending"
REVIEW_APPROVED = "approved"
REVIEW_REJECTED = "rejected"
REVIEW_FLAGGED = "flagged"
REVIEW_STATUSES = (REVIEW_PENDING, REVIEW_APPROVED, REVIEW_REJECTED, REVIEW_FLAGGED)

# Submission outcome reported to the author
SUBMISSION_PENDING = "pending_moderation"
SUBMISSION_PUBLISHED = "published"

# --- Reviewer levels ---
LEVEL_BEGINNER = "beginner"
LEVEL_INTERMEDIATE = "intermediate"
LEVEL_ADVANCED = "advanced"
LEVEL_EXPERT = "expert"

# --- Viewer roles ---
ROLE_USER = "user"
ROLE_ADMIN = "admin"

# --- Sort keys ---
SORT_RELEVANCE = "relevance"
SORT_RATING = "rating"
SORT_DISTANCE = "distance"
SORT_REVIEWS = "reviews"
SORT_NAME = "name"
SORT_PRICE = "price"
SORT_NEWEST = "newest"
SORT_OLDEST = "oldest"

# Review listing sort keys
REVIEW_SORT_NEWEST = "newest"
REVIEW_SORT_OLDEST = "oldest"
REVIEW_SORT_RATING_HIGH = "rating_high"
REVIEW_SORT_RATING_LOW = "rating_low"
REVIEW_SORT_HELPFUL = "helpful"
REVIEW_SORT_RELEVANCE = "relevance"

# --- Category match modes ---
MATCH_SUBSTRING = "substring"
MATCH_EXACT = "exact"

# --- Review input bounds ---
RATING_MIN = 1
RATING_MAX = 5
TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
TEXT_MIN_LENGTH = 20
TEXT_MAX_LENGTH = 5000
MAX_PHOTOS = 10

# --- Table names ---
TBL_BUSINESSES = "businesses"
TBL_REVIEWS = "reviews"
TBL_REVIEW_PHOTOS = "review_photos"
TBL_REVIEWER_PROFILES = "reviewer_profiles"
TBL_HELPFUL_VOTES = "review_helpful_votes"
TBL_INGEST_METADATA = "ingest_metadata"
