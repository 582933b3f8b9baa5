import json
import logging
import os
import random
import string
from dataclasses import replace

from flask import Flask, jsonify, request
from flask_login import LoginManager, UserMixin, current_user, login_required
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import or_
from sqlalchemy.orm.exc import StaleDataError

from uttt import (
    BoardCoord,
    Game,
    GameStatus,
    LifecycleError,
    Move,
    Result,
    apply_move,
    create_game,
    get_available_moves,
    get_player_symbol,
    is_player_in_game,
    join_game,
    validate_move,
    winning_line,
)

logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO'))
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'a_secret_key')
# ── Database path ─────────────────────────────────────────────────────────────
# DATABASE_URL points at Postgres in production. Without it we fall back to
# SQLite in an 'instance' folder next to app.py.
_db_url = os.environ.get('DATABASE_URL', None)
if _db_url and _db_url.startswith('postgres://'):
    # SQLAlchemy 1.4+ requires postgresql:// not postgres://
    _db_url = _db_url.replace('postgres://', 'postgresql://', 1)
if not _db_url:
    _data_dir = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'instance')
    os.makedirs(_data_dir, exist_ok=True)
    _db_url = f'sqlite:///{os.path.join(_data_dir, "db.sqlite3")}'
app.config['SQLALCHEMY_DATABASE_URI'] = _db_url
# Identity is issued upstream; the gateway passes the caller's id in this header.
app.config['USER_ID_HEADER'] = os.environ.get('USER_ID_HEADER', 'X-User-Id')
app.config['COMMIT_RETRIES'] = int(os.environ.get('COMMIT_RETRIES', 3))
db = SQLAlchemy(app)
login_manager = LoginManager(app)

GAME_ID_LENGTH = 8


class GameConflict(Exception):
    """Another request committed a newer snapshot of the same game first."""

    def __init__(self, game_id):
        super().__init__(f"game {game_id} was modified concurrently")
        self.game_id = game_id


class BadMoveRequest(Exception):
    """The request itself is unusable: caller not seated, or no move in the body."""

    def __init__(self, message, status=400):
        super().__init__(message)
        self.message = message
        self.status = status


# ── Models ───────────────────────────────────────────────────────────────────
class GameRecord(db.Model):
    id             = db.Column(db.String(GAME_ID_LENGTH), primary_key=True)
    player1_id     = db.Column(db.String(64), nullable=False, index=True)
    player2_id     = db.Column(db.String(64), nullable=True, index=True)
    status         = db.Column(db.String(10), nullable=False, index=True)
    current_player = db.Column(db.String(1), nullable=False)
    winner         = db.Column(db.String(10), nullable=True)
    state_json     = db.Column(db.Text, nullable=False)
    revision       = db.Column(db.Integer, default=0, nullable=False)
    created_at     = db.Column(db.DateTime, server_default=db.func.now())
    updated_at     = db.Column(db.DateTime, server_default=db.func.now(), onupdate=db.func.now())
    # Every UPDATE is issued as "... WHERE version = <version read>", so of two
    # writers holding the same snapshot only the first one commits.
    version        = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {'version_id_col': version}


class HeaderUser(UserMixin):
    def __init__(self, user_id):
        self.id = user_id
    def get_id(self): return self.id


@login_manager.request_loader
def load_user_from_request(req):
    user_id = req.headers.get(app.config['USER_ID_HEADER'], '').strip()
    return HeaderUser(user_id) if user_id else None


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'error': 'Unauthorized'}), 401


# ── Helpers ───────────────────────────────────────────────────────────────────
def new_game_id():
    while True:
        game_id = ''.join(random.choices(string.ascii_uppercase + string.digits, k=GAME_ID_LENGTH))
        if db.session.get(GameRecord, game_id) is None:
            return game_id


def write_game(record, game):
    """Copy a snapshot onto its row. Timestamps and id stay owned by the row."""
    state = game.to_dict()
    for key in ('id', 'createdAt', 'updatedAt'):
        state.pop(key, None)
    record.player1_id     = game.player1_id
    record.player2_id     = game.player2_id
    record.status         = game.status.value
    record.current_player = game.current_player.value
    record.winner         = state['winner']
    record.state_json     = json.dumps(state)
    record.revision       = game.revision


def read_game(record):
    game = Game.from_dict(json.loads(record.state_json))
    return replace(game, id=record.id, created_at=record.created_at, updated_at=record.updated_at)


def persist_game(record, game):
    write_game(record, game)
    try:
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        raise GameConflict(record.id) from e


def game_view(game):
    data = game.to_dict()
    board = data['board']
    board['winningLine'] = _line_view(winning_line(game.sub_board_results()))
    board['winningLines'] = [[_line_view(winning_line(b.cells)) for b in row] for row in game.meta_grid]
    return data


def _line_view(line):
    return [{'row': c.row, 'col': c.col} for c in line] if line else None


def error_response(reason, status=400, **extra):
    body = {'error': reason.message, 'code': reason.code}
    body.update(extra)
    return jsonify(body), status


def transition(game_id, step):
    """Load a game, run ``step`` on the snapshot and store what it returns.

    ``step`` maps a Game to a Result. A stale write means another request got
    there first, so the whole read-step-write cycle starts over on the fresh
    snapshot; nothing validated against the old one is reused.

    Returns (record, result), or (None, None) when the game does not exist.
    """
    for attempt in range(app.config['COMMIT_RETRIES']):
        record = db.session.get(GameRecord, game_id)
        if record is None:
            return None, None
        try:
            result = step(read_game(record))
        except BadMoveRequest:
            db.session.rollback()
            raise
        if not result.ok:
            db.session.rollback()
            return record, result
        try:
            persist_game(record, result.value)
        except GameConflict:
            logger.warning("Stale write on game %s (attempt %d)", game_id, attempt + 1)
            continue
        return record, result
    raise GameConflict(game_id)


def _parse_move(body, player):
    raw = body.get('move')
    if not isinstance(raw, dict):
        return None
    try:
        return Move(BoardCoord(raw['boardRow'], raw['boardCol']),
                    BoardCoord(raw['cellRow'], raw['cellCol']), player)
    except KeyError:
        return None


# ── Routes ───────────────────────────────────────────────────────────────────
@app.errorhandler(GameConflict)
def handle_conflict(e):
    logger.warning("Giving up on game %s after %d attempts", e.game_id, app.config['COMMIT_RETRIES'])
    return jsonify({'error': 'Game was modified by another request, please retry'}), 409


@app.route('/api/games', methods=['GET'])
@login_required
def list_games():
    uid = current_user.id
    records = (GameRecord.query
               .filter(or_(GameRecord.player1_id == uid, GameRecord.player2_id == uid))
               .order_by(GameRecord.updated_at.desc(), GameRecord.created_at.desc())
               .all())
    return jsonify({'games': [game_view(read_game(r)) for r in records]})


@app.route('/api/games', methods=['POST'])
@login_required
def create():
    game = create_game(current_user.id)
    record = GameRecord(id=new_game_id())
    write_game(record, game)
    db.session.add(record)
    db.session.commit()
    logger.info("Game %s created by %s", record.id, current_user.id)
    return jsonify({'game': game_view(read_game(record))}), 201


@app.route('/api/games/waiting', methods=['GET'])
@login_required
def waiting_games():
    records = (GameRecord.query
               .filter(GameRecord.status == GameStatus.WAITING.value,
                       GameRecord.player1_id != current_user.id)
               .order_by(GameRecord.created_at.asc())
               .all())
    return jsonify({'games': [game_view(read_game(r)) for r in records]})


@app.route('/api/games/<game_id>', methods=['GET'])
@login_required
def get_game(game_id):
    record = db.session.get(GameRecord, game_id)
    if record is None:
        return jsonify({'error': 'Game not found'}), 404
    game = read_game(record)
    if not is_player_in_game(game, current_user.id):
        return jsonify({'error': 'Forbidden'}), 403
    return jsonify({'game': game_view(game)})


@app.route('/api/games/<game_id>/moves', methods=['GET'])
@login_required
def available_moves(game_id):
    record = db.session.get(GameRecord, game_id)
    if record is None:
        return jsonify({'error': 'Game not found'}), 404
    game = read_game(record)
    if not is_player_in_game(game, current_user.id):
        return jsonify({'error': 'Forbidden'}), 403
    return jsonify({'moves': [m.to_dict() for m in get_available_moves(game)]})


@app.route('/api/games/<game_id>', methods=['PUT'])
@login_required
def game_action(game_id):
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        return jsonify({'error': 'Invalid action'}), 400
    action = body.get('action')
    uid = current_user.id

    if action == 'join':
        record, result = transition(game_id, lambda g: join_game(g, uid))
        if record is None:
            return jsonify({'error': 'Game not found'}), 404
        if not result.ok:
            return error_response(result.error)
        logger.info("Game %s joined by %s", game_id, uid)
        return jsonify({'game': game_view(result.value)})

    if action == 'move':
        def step(game):
            symbol = get_player_symbol(game, uid)
            if symbol is None:
                raise BadMoveRequest('Forbidden', 403)
            move = _parse_move(body, symbol)
            if move is None:
                raise BadMoveRequest('Invalid move')
            checked = validate_move(game, move)
            if not checked.ok:
                return checked
            return Result.success(apply_move(game, move))

        try:
            record, result = transition(game_id, step)
        except BadMoveRequest as e:
            return jsonify({'error': e.message, 'validMove': False}), e.status
        if record is None:
            return jsonify({'error': 'Game not found'}), 404
        if not result.ok:
            logger.debug("Move by %s on game %s rejected: %s", uid, game_id, result.error.code)
            return error_response(result.error, validMove=False)
        # Report the snapshot this request stored, not whatever the row holds now.
        game = result.value
        logger.info("Move by %s on game %s: %s", uid, game_id, game.last_move.to_dict())
        if game.status is GameStatus.FINISHED:
            logger.info("Game %s finished: %s", game_id, game.meta_result.value)
        return jsonify({'game': game_view(game), 'validMove': True})

    return jsonify({'error': 'Invalid action'}), 400


@app.route('/api/games/<game_id>', methods=['DELETE'])
@login_required
def cancel_game(game_id):
    record = db.session.get(GameRecord, game_id)
    if record is None:
        return jsonify({'error': 'Game not found'}), 404
    game = read_game(record)
    if game.player1_id != current_user.id:
        return jsonify({'error': 'Forbidden'}), 403
    if game.status is not GameStatus.WAITING:
        return error_response(LifecycleError.NOT_WAITING)
    db.session.delete(record)
    try:
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        raise GameConflict(game_id) from e
    logger.info("Game %s cancelled by %s", game_id, current_user.id)
    return '', 204


def _ensure_db():
    with app.app_context():
        db.create_all()

_ensure_db()

if __name__ == "__main__":
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
