REDIS_SESSION_KEY = "session:{token}" # session token - hash of user_id, username

REDIS_USER_KEY = "user:{user_id}" # user id - hash of username, code, avatar
REDIS_USER_CODE_KEY = "user:code:{code}" # friend code - user id
REDIS_USER_NEXT_ID = "user:next_id"
REDIS_FRIENDS_KEY = "user:friends:{user_id}" # set of friend user ids
REDIS_USER_GROUPS_KEY = "user:groups:{user_id}" # set of group ids
REDIS_USER_DMS_KEY = "user:dms:{user_id}" # set of dm ids

REDIS_GROUP_KEY = "group:{group_id}" # group id - hash of name, group_code
REDIS_GROUP_CODE_KEY = "group:code:{code}" # group code - group id
REDIS_GROUP_NEXT_ID = "group:next_id"
REDIS_GROUP_MEMBERS_KEY = "group:members:{group_id}" # set of user ids

REDIS_DM_KEY = "dm:{dm_id}" # dm id - hash of user_a, user_b
REDIS_DM_PAIR_KEY = "dm:pair:{user_a}:{user_b}" # lower id first - dm id
REDIS_DM_NEXT_ID = "dm:next_id"

REDIS_MESSAGES_KEY = "{kind}:messages:{room_id}" # list of JSON message records, oldest first
REDIS_MESSAGE_NEXT_ID = "message:next_id:{kind}"

# **Example message record (group)**
# - `id` = integer from `message:next_id:group`
# - `groupId` = group id
# - `user_id`, `username` = sender
# - `content` = text
# - `created_at` = ISO timestamp assigned at insert
#
# Direct message records carry `dmId`, `sender_id`, `sender_username` instead.
