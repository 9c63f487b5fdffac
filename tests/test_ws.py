def announce(ws, name, user_id):
    ws.send_json({'event': 'user-join', 'data': {'name': name, 'userId': user_id}})


def receive(ws, n):
    return [ws.receive_json() for _ in range(n)]


def test_private_message_between_two_clients(client):
    with client.websocket_connect('/ws') as alice:
        announce(alice, 'Alice', 'u1')
        assert [f['event'] for f in receive(alice, 3)] == ['user-joined', 'users-list', 'users-list-updated']

        with client.websocket_connect('/ws') as bob:
            announce(bob, 'Bob', 'u2')
            assert [f['event'] for f in receive(bob, 3)] == ['user-joined', 'users-list', 'users-list-updated']
            joined, updated = receive(alice, 2)
            assert joined['data']['user']['name'] == 'Bob'
            assert [u['userId'] for u in updated['data']] == ['u1', 'u2']

            alice.send_json({'event': 'private-message', 'data': {'toUserId': 'u2', 'message': 'hi Bob'}})
            msg = bob.receive_json()
            assert msg['event'] == 'private-message'
            assert msg['data']['fromUserId'] == 'u1'
            assert msg['data']['fromUserName'] == 'Alice'
            assert msg['data']['message'] == 'hi Bob'

            # the next thing Alice sees is her own chat echo, not the private message
            alice.send_json({'event': 'chat-message', 'data': {'message': 'hello room'}})
            echo = alice.receive_json()
            assert echo['event'] == 'chat-message'
            assert echo['data']['message'] == 'hello room'
            assert bob.receive_json()['event'] == 'chat-message'


def test_disconnect_notifies_remaining_clients(client, app):
    with client.websocket_connect('/ws') as bob:
        announce(bob, 'Bob', 'u2')
        receive(bob, 3)
        with client.websocket_connect('/ws') as alice:
            announce(alice, 'Alice', 'u1')
            receive(alice, 3)
            receive(bob, 2)
            assert client.get('/api/health').json()['users'] == 2

            # read Bob's notifications while Alice's session is still open,
            # leaving the block cancels the server task
            alice.close()
            left = bob.receive_json()
            assert left['event'] == 'user-left'
            assert left['data']['user']['name'] == 'Alice'
            assert left['data']['totalUsers'] == 1
            updated = bob.receive_json()
            assert updated['event'] == 'users-list-updated'
            assert [u['name'] for u in updated['data']] == ['Bob']

        assert list(app.state.relay.participants) == [p['id'] for p in updated['data']]


def test_typing_indicator_over_socket(client):
    with client.websocket_connect('/ws') as alice, client.websocket_connect('/ws') as bob:
        announce(alice, 'Alice', 'u1')
        receive(alice, 3)
        receive(bob, 2)
        alice.send_json({'event': 'typing', 'data': {'isTyping': True}})
        assert bob.receive_json() == {'event': 'typing', 'data': {'user': 'Alice', 'isTyping': True}}


def test_binary_frame_is_ignored(client):
    with client.websocket_connect('/ws') as alice:
        announce(alice, 'Alice', 'u1')
        receive(alice, 3)
        alice.send_bytes(b'\x00\x01')
        alice.send_json({'event': 'chat-message', 'data': {'message': 'still connected'}})
        msg = alice.receive_json()
        assert msg['event'] == 'chat-message'
        assert msg['data']['message'] == 'still connected'
