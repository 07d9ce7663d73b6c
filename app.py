"""Flask web application for Synaps connection matching."""

import logging
import os
from dataclasses import dataclass
from functools import wraps

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException

from config import (
    APP_URL,
    DATA_DIR,
    DEFAULT_MATCH_LIMIT,
    LOG_LEVEL,
    MATCH_MODE,
    MIN_CANDIDATE_POOL,
    OAUTH_CLIENT_ID,
    OAUTH_CLIENT_SECRET,
    PERSIST_PROFILES,
    SECRET_KEY,
    USE_SEED_PROFILES,
)
from synaps.matching import ScoringPolicy, seed_profiles
from synaps.services.audit import audit_event, log_api_call
from synaps.services.connection_service import ConnectionService, ConnectionServiceError
from synaps.services.conversation_service import ConversationService, ConversationServiceError
from synaps.services.matching_service import MatchingOptions, MatchingService
from synaps.services.profile_service import (
    ProfileNotFoundError,
    ProfileService,
    ProfileServiceError,
    ProfileStore,
)
from synaps.services.token_service import TokenStore
from synaps.services.validation import (
    sanitize_array,
    sanitize_string,
    validate_array,
    validate_number,
    validate_string,
    validate_uuid,
)

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY
app.config['MAX_CONTENT_LENGTH'] = 1 * 1024 * 1024  # 1MB max payload


@dataclass
class AppServices:
    """Services shared by the request handlers."""
    profiles: ProfileService
    conversations: ConversationService
    matching: MatchingService
    connections: ConnectionService
    tokens: TokenStore


def build_services(store=None, llm_service=None, tokens=None, matching_options=None):
    """Wire the service layer; arguments override the configured defaults."""
    if store is None:
        store = ProfileStore(DATA_DIR / 'profiles.json' if PERSIST_PROFILES else None)
    if matching_options is None:
        matching_options = MatchingOptions(
            policy=ScoringPolicy(mode=MATCH_MODE, min_pool_size=MIN_CANDIDATE_POOL),
            fallback_profiles=seed_profiles() if USE_SEED_PROFILES else (),
            default_limit=DEFAULT_MATCH_LIMIT,
        )
    if tokens is None:
        tokens = TokenStore()
        if OAUTH_CLIENT_ID and OAUTH_CLIENT_SECRET:
            tokens.register_client(OAUTH_CLIENT_ID, OAUTH_CLIENT_SECRET)
        else:
            logger.warning("OAUTH_CLIENT_ID / OAUTH_CLIENT_SECRET not set; no client can obtain API tokens")
    profiles = ProfileService(store, llm_service=llm_service)
    return AppServices(
        profiles=profiles,
        conversations=ConversationService(profiles, llm_service=llm_service),
        matching=MatchingService(store, matching_options),
        connections=ConnectionService(store),
        tokens=tokens,
    )


def configure_services(services):
    """Install a service bundle on the app (used by tests)."""
    app.extensions['synaps'] = services


def services() -> AppServices:
    return app.extensions['synaps']


configure_services(build_services())


def token_required(f):
    """Decorator to require a valid bearer token for API endpoints."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        check = services().tokens.verify(request.headers.get('Authorization'))
        if not check.ok:
            audit_event(None, 'auth_failed', 'api_endpoint', 'denied',
                        resource_id=request.path, error_message=check.error)
            log_api_call(None, request.path, request.method, 401, error_message=check.error)
            return jsonify({'error': check.error, 'error_description': 'Authentication required'}), 401
        g.user_id = check.user_id
        return f(*args, **kwargs)
    return decorated_function


def respond(payload, status=200, request_body=None):
    """Audit and return a JSON response."""
    error = payload.get('error') if isinstance(payload, dict) else None
    log_api_call(g.get('user_id'), request.path, request.method, status,
                 request_body, payload if status < 400 else None, error)
    return jsonify(payload), status


def validation_failed(errors, data):
    audit_event(g.user_id, 'validation_failed', 'api_endpoint', 'failure',
                resource_id=request.path, metadata={'errors': [e.message for e in errors]})
    return respond({'error': 'Validation failed', 'details': [e.to_dict() for e in errors]}, 400, data)


@app.route('/health')
def health():
    return jsonify({'status': 'ok'})


def _oauth_params():
    return request.form if request.form else (request.get_json(silent=True) or {})


def oauth_error(error, description, status):
    log_api_call(None, request.path, request.method, status, error_message=error)
    return jsonify({'error': error, 'error_description': description}), status


@app.route('/oauth/token', methods=['POST'])
def oauth_token():
    """Exchange client credentials for API tokens.

    Supported grants:
    - client_credentials: a registered client issues a token for ``user_id``
      once it has authorized that user
    - refresh_token: swap a refresh token for a new access token
    """
    params = _oauth_params()
    client_id = params.get('client_id')
    tokens = services().tokens
    if not tokens.verify_client(client_id, params.get('client_secret')):
        audit_event(None, 'oauth_client_rejected', 'oauth_token', 'denied', metadata={'client_id': client_id})
        return oauth_error('invalid_client', 'Invalid client credentials', 401)

    grant_type = params.get('grant_type')
    if grant_type == 'client_credentials':
        user_id = params.get('user_id')
        error = validate_string(user_id, 'user_id', required=True, max_length=100)
        if error:
            return oauth_error('invalid_request', error.message, 400)
        access = tokens.issue(user_id.strip(), client_id=client_id)
    elif grant_type == 'refresh_token':
        access = tokens.refresh(params.get('refresh_token'), client_id)
        if access is None:
            return oauth_error('invalid_grant', 'Invalid refresh token', 400)
    else:
        return oauth_error('unsupported_grant_type', 'Grant type not supported', 400)

    audit_event(access.user_id, 'token_issued', 'oauth_token', 'success',
                metadata={'client_id': client_id, 'grant_type': grant_type})
    log_api_call(access.user_id, request.path, request.method, 200)
    return jsonify(access.to_dict())


@app.route('/oauth/revoke', methods=['POST'])
def oauth_revoke():
    """Revoke an access token; unknown tokens are not an error."""
    params = _oauth_params()
    if not services().tokens.verify_client(params.get('client_id'), params.get('client_secret')):
        return oauth_error('invalid_client', 'Invalid client credentials', 401)
    revoked = services().tokens.revoke(params.get('token') or '')
    log_api_call(None, request.path, request.method, 200)
    return jsonify({'revoked': revoked})


@app.route('/api/chat', methods=['POST'])
@token_required
def api_chat():
    """Send a message to the AI facilitator."""
    data = request.get_json(silent=True) or {}
    message = data.get('message')
    history = data.get('conversationHistory') or []

    errors = [e for e in (
        validate_string(message, 'message', required=True, max_length=4000),
        validate_array(history, 'conversationHistory', max_length=100),
    ) if e]
    if errors:
        return validation_failed(errors, data)

    try:
        turn = services().conversations.send(g.user_id, sanitize_string(message), history)
        return respond(turn.to_dict(), 200, data)
    except ConversationServiceError as e:
        logger.error("[chat] user=%s failed: %s", g.user_id, e)
        return respond({'error': str(e)}, 500, data)


@app.route('/api/profile', methods=['GET'])
@token_required
def api_get_profile():
    """Return the caller's profile."""
    try:
        profile = services().profiles.get_profile(g.user_id)
    except ProfileNotFoundError:
        return respond({'error': 'Profile not found'}, 404)
    audit_event(g.user_id, 'profile_view', 'profile', 'success', resource_id=profile.id)
    return respond(profile.to_public_dict())


@app.route('/api/profile', methods=['PATCH', 'POST'])
@token_required
def api_update_profile():
    """Partially update the caller's profile."""
    data = request.get_json(silent=True) or {}

    def tag_item(item):
        return validate_string(item, 'item', required=True, max_length=100)

    errors = [e for e in (
        validate_array(data.get('interests'), 'interests', max_length=50, item_validator=tag_item),
        validate_array(data.get('conversationTopics'), 'conversationTopics', max_length=50, item_validator=tag_item),
        validate_string(data.get('currentMood'), 'currentMood', max_length=100),
        validate_string(data.get('currentIntentions'), 'currentIntentions', max_length=500),
        validate_string(data.get('connectionGoals'), 'connectionGoals', max_length=500),
        validate_string(data.get('displayName'), 'displayName', max_length=100),
        validate_string(data.get('bio'), 'bio', max_length=1000),
    ) if e]
    if errors:
        return validation_failed(errors, data)

    payload = {}
    for key, value in data.items():
        if isinstance(value, str):
            payload[key] = sanitize_string(value)
        elif isinstance(value, list):
            payload[key] = sanitize_array(value)

    try:
        profile = services().profiles.update_profile(g.user_id, payload)
    except ProfileNotFoundError:
        return respond({'error': 'Profile not found'}, 404, data)
    except ProfileServiceError as e:
        return respond({'error': str(e)}, 400, data)

    audit_event(g.user_id, 'profile_update', 'profile', 'success',
                resource_id=profile.id, metadata={'fields': sorted(payload)})
    return respond({'success': True, 'profile': profile.to_public_dict()}, 200, data)


@app.route('/api/suggestions', methods=['GET'])
@token_required
def api_suggestions():
    """Ranked connection suggestions for the in-app list."""
    topic = request.args.get('topic')
    error = validate_string(topic, 'topic', max_length=200)
    if error:
        return validation_failed([error], dict(request.args))

    matches = services().matching.suggest(g.user_id, topic=sanitize_string(topic) if topic else None)
    return respond({'connections': [m.to_dict() for m in matches]})


@app.route('/api/matches', methods=['POST'])
@token_required
def api_find_matches():
    """Search for compatible users (external assistant integration)."""
    data = request.get_json(silent=True) or {}
    topic = data.get('topic')
    mood = data.get('mood')
    conversation_type = data.get('conversationType')
    limit = data.get('limit', DEFAULT_MATCH_LIMIT)

    errors = [e for e in (
        validate_string(topic, 'topic', max_length=200),
        validate_string(mood, 'mood', max_length=100),
        validate_string(conversation_type, 'conversationType', max_length=100),
        validate_number(limit, 'limit', minimum=1, maximum=20, integer=True),
    ) if e]
    if errors:
        return validation_failed(errors, data)

    try:
        result = services().matching.find_matches(
            g.user_id,
            topic=sanitize_string(topic) if topic else None,
            mood=sanitize_string(mood) if mood else None,
            conversation_type=sanitize_string(conversation_type) if conversation_type else None,
            limit=int(float(limit)),
        )
    except ProfileNotFoundError:
        return respond({'error': 'User profile not found'}, 404, data)

    payload = result.to_dict()
    payload['appUrl'] = APP_URL
    return respond(payload, 200, data)


@app.route('/api/connections', methods=['POST'])
@token_required
def api_create_connection():
    """Open a conversation with a selected candidate."""
    data = request.get_json(silent=True) or {}
    target_id = data.get('targetUserId') or data.get('connectedUserId')

    errors = [e for e in (
        validate_string(target_id, 'targetUserId', required=True, max_length=100),
        validate_string(data.get('introMessage'), 'introMessage', max_length=1000),
        validate_string(data.get('reasoning') or data.get('aiReasoning'), 'reasoning', max_length=1000),
    ) if e]
    if errors:
        return validation_failed(errors, data)

    intro = data.get('introMessage')
    reasoning = data.get('reasoning') or data.get('aiReasoning')
    try:
        result = services().connections.connect(
            g.user_id,
            target_id,
            reasoning=sanitize_string(reasoning) if reasoning else None,
            intro_message=sanitize_string(intro) if intro else None,
        )
    except ProfileNotFoundError:
        audit_event(g.user_id, 'connection_attempt_failed', 'conversation', 'failure',
                    metadata={'target': target_id}, error_message='Target user not found')
        return respond({'error': 'Target user not found'}, 404, data)
    except ConnectionServiceError as e:
        return respond({'error': str(e)}, 400, data)

    if result.is_new:
        audit_event(g.user_id, 'connection_created', 'conversation', 'success',
                    resource_id=result.conversation.id)
    payload = result.to_dict()
    payload['conversationUrl'] = f"{APP_URL}/chat?conversation={result.conversation.id}"
    return respond(payload, 200, data)


@app.route('/api/conversations', methods=['GET'])
@token_required
def api_conversations():
    """The caller's conversation history, most recent first."""
    history = services().connections.history(g.user_id)
    return respond({'conversations': [c.to_dict() for c in history]})


@app.route('/api/conversations/<conversation_id>/messages', methods=['GET'])
@token_required
def api_conversation_messages(conversation_id):
    """List the messages of one of the caller's conversations."""
    error = validate_uuid(conversation_id, 'conversationId', required=True)
    if error:
        return validation_failed([error], {'conversationId': conversation_id})
    conversation = services().connections.conversations.get(conversation_id)
    if conversation is None or not conversation.involves(g.user_id):
        return respond({'error': 'Conversation not found'}, 404)
    messages = services().connections.messages(conversation_id)
    return respond({'messages': [m.to_dict() for m in messages]})


@app.route('/api/import-memory', methods=['POST'])
@token_required
def api_import_memory():
    """Import an exported assistant memory into the caller's profile."""
    data = request.get_json(silent=True) or {}
    memory = data.get('memory')
    error = validate_string(memory, 'memory', required=True, max_length=10000)
    if error:
        return validation_failed([error], data)

    try:
        imported = services().profiles.import_memory(g.user_id, sanitize_string(memory))
    except ProfileServiceError as e:
        logger.error("[memory] user=%s failed: %s", g.user_id, e)
        return respond({'error': str(e)}, 500, data)
    return respond({'success': True, 'imported_data': imported}, 200, data)


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    """Hide internals of unexpected failures."""
    if isinstance(e, HTTPException):
        return jsonify({'error': e.description}), e.code
    logger.exception("[api] unhandled error on %s", request.path)
    return jsonify({'error': 'Internal server error'}), 500


if __name__ == '__main__':
    if not os.environ.get('OPENAI_API_KEY') and not os.environ.get('GEMINI_API_KEY'):
        logger.warning("OPENAI_API_KEY or GEMINI_API_KEY environment variable not set")

    port = int(os.environ.get('PORT', 5000))
    app.run(debug=False, host='0.0.0.0', port=port)
